from pydantic import BaseModel, ConfigDict


class User(BaseModel):
    model_config = ConfigDict(frozen=True)

    username: str
    password: str  # werkzeug password hash
    display_name: str
