"""SQLAlchemy model for installed tenants."""

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from connect_engine.common.models import Base, TimestampMixin


class TenantRecordModel(Base, TimestampMixin):
    __tablename__ = "addon_tenants"

    namespace: Mapped[str] = mapped_column(String(255), primary_key=True)
    tenant_key: Mapped[str] = mapped_column(String(255), primary_key=True)
    data: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
