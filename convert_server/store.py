"""Persistence for users, API keys and conversion jobs.

`Store` is the capability the core components depend on. `SqlStore` backs it
with SQLAlchemy; the usage counters and job status changes are single
conditional UPDATE statements so concurrent writers never lose updates.
"""
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterable, Iterator, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session, sessionmaker

from convert_server.models import ApiKey, ConversionJob, User


class Store(ABC):
    """Entity CRUD plus the atomic operations the quota ledger relies on."""

    # Users
    @abstractmethod
    def create_user(self, user: User, api_key: Optional[ApiKey] = None) -> User: ...

    @abstractmethod
    def get_user(self, user_id: str) -> Optional[User]: ...

    @abstractmethod
    def get_user_by_email(self, email: str) -> Optional[User]: ...

    @abstractmethod
    def update_user(self, user_id: str, **fields) -> Optional[User]: ...

    @abstractmethod
    def list_user_ids(self) -> list[str]: ...

    # Usage counters
    @abstractmethod
    def roll_usage_period(self, user_id: str, day: str, month: str) -> None: ...

    @abstractmethod
    def try_increment_usage(self, user_id: str) -> bool: ...

    @abstractmethod
    def increment_usage(self, user_id: str) -> None: ...

    @abstractmethod
    def decrement_usage(self, user_id: str) -> None: ...

    @abstractmethod
    def reset_usage(self, user_id: str, daily: bool, monthly: bool) -> Optional[User]: ...

    # API keys
    @abstractmethod
    def create_api_key(self, api_key: ApiKey) -> ApiKey: ...

    @abstractmethod
    def get_api_key(self, key_id: str) -> Optional[ApiKey]: ...

    @abstractmethod
    def get_api_key_by_hash(self, key_hash: str) -> Optional[ApiKey]: ...

    @abstractmethod
    def list_api_keys(self, user_id: str) -> list[ApiKey]: ...

    @abstractmethod
    def deactivate_api_key(self, key_id: str) -> bool: ...

    @abstractmethod
    def record_api_key_use(self, key_id: str, when: datetime) -> None: ...

    # Jobs
    @abstractmethod
    def create_job(self, job: ConversionJob) -> ConversionJob: ...

    @abstractmethod
    def get_job(self, job_id: str) -> Optional[ConversionJob]: ...

    @abstractmethod
    def list_jobs(self, user_id: str, limit: Optional[int] = None) -> list[ConversionJob]: ...

    @abstractmethod
    def list_jobs_in_status(self, statuses: Iterable[str]) -> list[ConversionJob]: ...

    @abstractmethod
    def update_job_if_status(
        self, job_id: str, expected: Iterable[str], **fields
    ) -> Optional[ConversionJob]: ...


class SqlStore(Store):
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory

    @contextmanager
    def _session(self) -> Iterator[Session]:
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    # Users

    def create_user(self, user: User, api_key: Optional[ApiKey] = None) -> User:
        with self._session() as db:
            db.add(user)
            if api_key is not None:
                db.flush()
                db.add(api_key)
        return user

    def get_user(self, user_id: str) -> Optional[User]:
        with self._session() as db:
            return db.get(User, user_id)

    def get_user_by_email(self, email: str) -> Optional[User]:
        with self._session() as db:
            return db.scalars(select(User).where(User.email == email)).first()

    def update_user(self, user_id: str, **fields) -> Optional[User]:
        with self._session() as db:
            user = db.get(User, user_id)
            if user is None:
                return None
            for name, value in fields.items():
                setattr(user, name, value)
            return user

    def list_user_ids(self) -> list[str]:
        with self._session() as db:
            return list(db.scalars(select(User.id)))

    # Usage counters

    def roll_usage_period(self, user_id: str, day: str, month: str) -> None:
        with self._session() as db:
            db.execute(
                update(User)
                .where(User.id == user_id, User.usage_day != day)
                .values(daily_usage=0, usage_day=day)
                .execution_options(synchronize_session=False)
            )
            db.execute(
                update(User)
                .where(User.id == user_id, User.usage_month != month)
                .values(monthly_usage=0, usage_month=month)
                .execution_options(synchronize_session=False)
            )

    def try_increment_usage(self, user_id: str) -> bool:
        with self._session() as db:
            result = db.execute(
                update(User)
                .where(
                    User.id == user_id,
                    User.daily_usage < User.daily_limit,
                    User.monthly_usage < User.monthly_limit,
                )
                .values(
                    daily_usage=User.daily_usage + 1,
                    monthly_usage=User.monthly_usage + 1,
                )
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def increment_usage(self, user_id: str) -> None:
        with self._session() as db:
            db.execute(
                update(User)
                .where(User.id == user_id)
                .values(
                    daily_usage=User.daily_usage + 1,
                    monthly_usage=User.monthly_usage + 1,
                )
                .execution_options(synchronize_session=False)
            )

    def decrement_usage(self, user_id: str) -> None:
        with self._session() as db:
            db.execute(
                update(User)
                .where(User.id == user_id, User.daily_usage > 0)
                .values(daily_usage=User.daily_usage - 1)
                .execution_options(synchronize_session=False)
            )
            db.execute(
                update(User)
                .where(User.id == user_id, User.monthly_usage > 0)
                .values(monthly_usage=User.monthly_usage - 1)
                .execution_options(synchronize_session=False)
            )

    def reset_usage(self, user_id: str, daily: bool, monthly: bool) -> Optional[User]:
        values = {}
        if daily:
            values["daily_usage"] = 0
        if monthly:
            values["monthly_usage"] = 0
        with self._session() as db:
            if values:
                db.execute(
                    update(User)
                    .where(User.id == user_id)
                    .values(**values)
                    .execution_options(synchronize_session=False)
                )
            return db.get(User, user_id)

    # API keys

    def create_api_key(self, api_key: ApiKey) -> ApiKey:
        with self._session() as db:
            db.add(api_key)
        return api_key

    def get_api_key(self, key_id: str) -> Optional[ApiKey]:
        with self._session() as db:
            return db.get(ApiKey, key_id)

    def get_api_key_by_hash(self, key_hash: str) -> Optional[ApiKey]:
        with self._session() as db:
            return db.scalars(select(ApiKey).where(ApiKey.key_hash == key_hash)).first()

    def list_api_keys(self, user_id: str) -> list[ApiKey]:
        with self._session() as db:
            return list(db.scalars(
                select(ApiKey)
                .where(ApiKey.user_id == user_id)
                .order_by(ApiKey.created_at)
            ))

    def deactivate_api_key(self, key_id: str) -> bool:
        with self._session() as db:
            result = db.execute(
                update(ApiKey)
                .where(ApiKey.id == key_id, ApiKey.is_active.is_(True))
                .values(is_active=False)
                .execution_options(synchronize_session=False)
            )
            return result.rowcount == 1

    def record_api_key_use(self, key_id: str, when: datetime) -> None:
        with self._session() as db:
            db.execute(
                update(ApiKey)
                .where(ApiKey.id == key_id)
                .values(usage_count=ApiKey.usage_count + 1, last_used=when)
                .execution_options(synchronize_session=False)
            )

    # Jobs

    def create_job(self, job: ConversionJob) -> ConversionJob:
        with self._session() as db:
            db.add(job)
        return job

    def get_job(self, job_id: str) -> Optional[ConversionJob]:
        with self._session() as db:
            return db.get(ConversionJob, job_id)

    def list_jobs(self, user_id: str, limit: Optional[int] = None) -> list[ConversionJob]:
        query = (
            select(ConversionJob)
            .where(ConversionJob.user_id == user_id)
            .order_by(ConversionJob.created_at.desc(), ConversionJob.id)
        )
        if limit is not None:
            query = query.limit(limit)
        with self._session() as db:
            return list(db.scalars(query))

    def list_jobs_in_status(self, statuses: Iterable[str]) -> list[ConversionJob]:
        with self._session() as db:
            return list(db.scalars(
                select(ConversionJob).where(ConversionJob.status.in_(list(statuses)))
            ))

    def update_job_if_status(
        self, job_id: str, expected: Iterable[str], **fields
    ) -> Optional[ConversionJob]:
        """Compare-and-set on the job status; None when the job is not in `expected`."""
        with self._session() as db:
            result = db.execute(
                update(ConversionJob)
                .where(ConversionJob.id == job_id, ConversionJob.status.in_(list(expected)))
                .values(**fields)
                .execution_options(synchronize_session=False)
            )
            if result.rowcount != 1:
                return None
            return db.get(ConversionJob, job_id)
