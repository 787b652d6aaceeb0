from pydantic import BaseModel, EmailStr, Field


class UserCreate(BaseModel):
    display_name: str = Field(min_length=1, max_length=200)
    email: EmailStr | None = None


class UserBootstrapOut(BaseModel):
    uid: str
    display_name: str
    api_key: str
