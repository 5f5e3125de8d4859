from pydantic import BaseModel, EmailStr, Field, SecretStr


class PasswordForgotIn(BaseModel):
    email: EmailStr


class PasswordForgotOut(BaseModel):
    message: str = "If the email address is registered, a code has been sent."
    expires_in: int


class ResetCodeVerifyIn(BaseModel):
    email: EmailStr
    code: str = Field(min_length=1, max_length=16)


class ResetCodeVerifyOut(BaseModel):
    reset_token: str


class PasswordResetIn(BaseModel):
    reset_token: SecretStr
    new_password: SecretStr
