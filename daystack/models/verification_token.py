from sqlalchemy import Column, Integer, String, DateTime
from daystack.database import Base


class VerificationToken(Base):
    __tablename__ = "verification_tokens"

    id = Column(Integer, primary_key=True, autoincrement=True)
    identifier = Column(String(255), nullable=False, index=True)  # email address
    token_hash = Column(String(255), nullable=False)  # bcrypt
    expires = Column(DateTime, nullable=False)
