from pydantic import BaseModel


class ShopOut(BaseModel):
    id: str
    name: str
