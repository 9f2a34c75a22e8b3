from sqlalchemy import Boolean, Column, DateTime, Integer, String, UniqueConstraint, func

from order_tracking.core.database import Base


class CompanyTrackingSettings(Base):
    __tablename__ = "company_tracking_settings"
    __table_args__ = (
        UniqueConstraint("company_id", name="ux_company_tracking_settings_company_id"),
    )

    id = Column(Integer, primary_key=True)
    company_id = Column(String(64), nullable=False, index=True)
    # Força todos os itens pelo fluxo pending -> preparing -> ready -> delivered
    enable_detailed_tracking = Column(Boolean, nullable=False, default=False)
    updated_at = Column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )
