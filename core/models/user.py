"""User profile update models."""

from pydantic import BaseModel, EmailStr, Field


class UserSelfUpdate(BaseModel):
    """Profile fields a user may change on their own account."""

    surname: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=20)
    image_path: str | None = Field(None, alias="imagePath", max_length=500)

    model_config = {"populate_by_name": True}


class UserAdminUpdate(BaseModel):
    """Fields an admin may change on any account. Passwords are not among them."""

    id: int
    surname: str = Field(..., min_length=1, max_length=20)
    name: str = Field(..., min_length=1, max_length=20)
    role: str = Field(..., min_length=1, max_length=20)
    email: EmailStr
    image_path: str | None = Field(None, alias="imagePath", max_length=500)

    model_config = {"populate_by_name": True}
