from pydantic import AliasChoices, BaseModel, ConfigDict, EmailStr, Field
from pydantic.alias_generators import to_camel


def _aliases(name: str) -> AliasChoices:
    camel = to_camel(name)
    return AliasChoices(name, camel, camel[:1].upper() + camel[1:])


class _Request(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class RegisterRequest(_Request):
    email: EmailStr = Field(validation_alias=_aliases('email'))
    password: str = Field(min_length=6, validation_alias=_aliases('password'))


class LoginRequest(_Request):
    email: str = Field(validation_alias=_aliases('email'))
    password: str = Field(validation_alias=_aliases('password'))


class RefreshRequest(_Request):
    refresh_token: str = Field(validation_alias=_aliases('refresh_token'))


class LogoutRequest(_Request):
    refresh_token: str = Field(validation_alias=_aliases('refresh_token'))


class TokenResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    access_token: str
    refresh_token: str
    expires_in: int
