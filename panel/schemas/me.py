from pydantic import BaseModel


class MeOut(BaseModel):
    uid: str
    display_name: str
    api_key_id: str | None
