"""Pydantic schemas for the authenticated viewer."""

from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from chapterhub.auth.permissions import Capability, UserRole, has_capability


class Viewer(BaseModel):
    """The user behind the current request, as read from the access token."""

    model_config = ConfigDict(use_enum_values=True)

    id: UUID
    role: UserRole = UserRole.USER
    display_name: str = Field(default="", max_length=100)
    avatar_url: str | None = None

    def can(self, capability: Capability | str) -> bool:
        """Check a capability for this viewer's role."""
        return has_capability(self.role, capability)
