from sqlalchemy import Column, DateTime, Index, Integer, String

from app.platform.db.base import Base
from app.platform.utils.time import utc_now


class OneTimeCode(Base):
    __tablename__ = "otp_verifications"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), index=True, nullable=False)
    otp_code = Column(String(6), nullable=False)
    expires_at = Column(DateTime, nullable=False)
    created_at = Column(DateTime, default=utc_now, nullable=False)

    __table_args__ = (
        Index("ix_otp_verifications_email_code", "email", "otp_code"),
    )

    def __repr__(self):
        return f"<OneTimeCode(id={self.id}, email={self.email}, expires_at={self.expires_at})>"
