from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from panel.core.ids import gen_id

from panel.models.base import Base, AuditMixin


class User(AuditMixin, Base):
    __tablename__ = "users"

    id: Mapped[str] = mapped_column(String, primary_key=True, default=lambda: gen_id("usr"))
    display_name: Mapped[str] = mapped_column(String(200), nullable=False, default="")
    email: Mapped[str | None] = mapped_column(String(320), nullable=True, unique=True)
