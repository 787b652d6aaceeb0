from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column

from panel.models.base import Base, AuditMixin


class Document(AuditMixin, Base):
    """
    Schemaless document keyed by (collection, id).

    Sub-collections use a path-like collection name, e.g. "shops/<shop_id>/seller_info".
    """
    __tablename__ = "documents"
    __table_args__ = (
        Index("ix_documents_data_gin", "data", postgresql_using="gin"),
    )

    collection: Mapped[str] = mapped_column(String(300), primary_key=True)
    id: Mapped[str] = mapped_column(String(120), primary_key=True)

    data: Mapped[dict] = mapped_column(JSONB, nullable=False, default=dict)
