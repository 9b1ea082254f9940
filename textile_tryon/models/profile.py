"""Session-keyed user profile models."""

from datetime import datetime

from pydantic import BaseModel, Field, computed_field


class UserProfile(BaseModel):
    """An anonymous user identified only by a browser session id."""

    id: int
    session_id: str
    profile_name: str | None = None
    created_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def display_name(self) -> str:
        if self.profile_name and self.profile_name.strip():
            return self.profile_name
        return "Guest User"


class UserPhoto(BaseModel):
    """A photo of the user, used as the person image for try-on."""

    id: int
    user_profile_id: int
    photo_url: str
    photo_name: str | None = None
    uploaded_at: datetime = Field(default_factory=datetime.now)

    @computed_field
    @property
    def display_name(self) -> str:
        """Photo name if set, else the file name from the URL."""
        if self.photo_name and self.photo_name.strip():
            return self.photo_name
        file_name = self.photo_url.rsplit("/", 1)[-1]
        return file_name or "Untitled Photo"
