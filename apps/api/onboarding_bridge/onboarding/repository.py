from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from onboarding_bridge.onboarding.errors import DuplicateRecord, StoreFailure
from onboarding_bridge.onboarding.models import ProvisionedUser
from onboarding_bridge.onboarding.schemas import NewProvisionedUser, ProvisionedUserRead


class ProvisioningStore:
    """Durable record of provisioned users, keyed by a unique email column.

    Lookups are exact and case-sensitive. The unique constraint, not
    ``find_by_email``, decides whether an insert wins.
    """

    def find_by_email(self, session: Session, email: str) -> ProvisionedUserRead | None:
        try:
            row = session.scalar(select(ProvisionedUser).where(ProvisionedUser.email == email))
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreFailure(f"duplicate check failed: {exc}") from exc
        if row is None:
            return None
        return ProvisionedUserRead.model_validate(row)

    def insert(self, session: Session, record: NewProvisionedUser) -> ProvisionedUserRead:
        row = ProvisionedUser(
            first_name=record.first_name,
            last_name=record.last_name,
            email=record.email,
            phone=record.phone,
            crm_contact_id=record.crm_contact_id,
            external_account_id=record.external_account_id,
        )
        session.add(row)
        try:
            session.commit()
        except IntegrityError as exc:
            session.rollback()
            if self.find_by_email(session, record.email) is not None:
                raise DuplicateRecord(record.email) from exc
            raise StoreFailure(f"failed to save user record: {exc}") from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise StoreFailure(f"failed to save user record: {exc}") from exc

        session.refresh(row)
        return ProvisionedUserRead.model_validate(row)
