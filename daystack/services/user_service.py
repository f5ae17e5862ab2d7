"""
user_service.py - Users created and linked by the sign-in providers
"""

import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session

from daystack.auth import hash_token, verify_token_hash
from daystack.config import VERIFICATION_TOKEN_HOURS
from daystack.models.account import Account
from daystack.models.user import User
from daystack.models.verification_token import VerificationToken

logger = logging.getLogger(__name__)


class UserService:
    @staticmethod
    def upsert(db: Session, email: str, name: str | None = None, image: str | None = None,
               verified: bool = False) -> User:
        """Find the user by email or create one; fill in profile fields that are still empty."""
        try:
            email = email.strip().lower()
            user = db.query(User).filter_by(email=email).first()
            if user is None:
                user = User(email=email, name=name, image=image)
                db.add(user)
                logger.info(f"Created user {email}")
            else:
                user.name = user.name or name
                user.image = user.image or image
            if verified and user.email_verified is None:
                user.email_verified = datetime.now(timezone.utc)
            db.commit()
            db.refresh(user)
            return user
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def link_account(db: Session, user: User, provider: str, provider_account_id: str) -> Account:
        try:
            account = db.query(Account).filter_by(provider=provider, provider_account_id=provider_account_id).first()
            if account is None:
                account = Account(user_id=user.id, provider=provider, provider_account_id=provider_account_id)
                db.add(account)
                db.commit()
                db.refresh(account)
            return account
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def user_for_account(db: Session, provider: str, provider_account_id: str) -> User | None:
        account = db.query(Account).filter_by(provider=provider, provider_account_id=provider_account_id).first()
        return db.get(User, account.user_id) if account else None

    @staticmethod
    def create_verification(db: Session, email: str, token: str) -> VerificationToken:
        try:
            row = VerificationToken(
                identifier=email.strip().lower(),
                token_hash=hash_token(token),
                expires=datetime.now(timezone.utc).replace(tzinfo=None) + timedelta(hours=VERIFICATION_TOKEN_HOURS),
            )
            db.add(row)
            db.commit()
            return row
        except Exception:
            db.rollback()
            raise

    @staticmethod
    def consume_verification(db: Session, email: str, token: str) -> bool:
        """
        Check a magic-link token. A matching, unexpired token is deleted so it
        cannot be used twice; expired tokens for the address are dropped too.
        """
        try:
            now = datetime.now(timezone.utc).replace(tzinfo=None)
            rows = db.query(VerificationToken).filter_by(identifier=email.strip().lower()).all()
            matched = False
            for row in rows:
                if row.expires <= now:
                    db.delete(row)
                elif not matched and verify_token_hash(token, row.token_hash):
                    db.delete(row)
                    matched = True
            db.commit()
            return matched
        except Exception:
            db.rollback()
            raise
