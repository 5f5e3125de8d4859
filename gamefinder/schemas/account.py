from pydantic import BaseModel, SecretStr


class VerifyCurrentIn(BaseModel):
    email: str
    password: SecretStr


class AccountUpdateIn(BaseModel):
    nickname: str | None = None
    email: str | None = None


class PasswordChangeIn(BaseModel):
    current_password: SecretStr | None = None
    new_password: SecretStr | None = None


class MessageOut(BaseModel):
    message: str
