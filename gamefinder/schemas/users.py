from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SignupIn(BaseModel):
    nickname: str = Field(min_length=1, max_length=50)
    email: EmailStr
    password: str


class LoginIn(BaseModel):
    email: EmailStr
    password: str


class GoogleLoginIn(BaseModel):
    id_token: str = Field(min_length=1)


class UserOut(BaseModel):
    id: int
    nickname: str
    email: EmailStr

    model_config = ConfigDict(
        from_attributes=True,
    )


class AuthOut(BaseModel):
    user: UserOut
    token: str
