"""License validation against the identity provider with a TTL cache."""

import threading
from datetime import datetime, timedelta
from typing import Dict, Optional

import requests
from loguru import logger
from pydantic import BaseModel, Field

from ..api.exceptions import UpstreamServiceError
from ..config.config import IdentityProviderConfig


class LicenseStatus(BaseModel):
    """License status of a user."""

    valid: bool = Field(default=False, description='User holds a valid license')
    has_seat: bool = Field(default=False, description='User has an assigned seat')
    seat_type: Optional[str] = Field(default=None, description='Seat type')
    assigned_at: Optional[datetime] = Field(default=None, description='Seat assignment time')
    message: str = Field(default='', description='Human readable status')
    checked_at: datetime = Field(default_factory=datetime.now)
    expires_at: datetime = Field(default_factory=datetime.now)
    error: Optional[str] = Field(default=None, description='Error when the check failed')

    class Config:
        """Pydantic configuration."""

        json_encoders = {datetime: lambda v: v.isoformat() if v else None}


class LicenseCache:
    """Thread-safe map of user login to license status.

    The lock only guards dictionary access.
    """

    def __init__(self):
        self._entries: Dict[str, LicenseStatus] = {}
        self._lock = threading.Lock()

    def get(self, user_login: str, now: Optional[datetime] = None) -> Optional[LicenseStatus]:
        """Return a fresh entry, or None if missing or expired."""
        with self._lock:
            status = self._entries.get(user_login)
        if status is None:
            return None
        if (now or datetime.now()) >= status.expires_at:
            return None
        return status

    def set(self, user_login: str, status: LicenseStatus) -> None:
        with self._lock:
            self._entries[user_login] = status

    def invalidate(self, user_login: str) -> None:
        with self._lock:
            self._entries.pop(user_login, None)

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class LicenseValidator:
    """Checks whether users hold a license seat on the identity provider."""

    def __init__(
        self,
        config: Optional[IdentityProviderConfig] = None,
        session: Optional[requests.Session] = None,
    ):
        """Initialize license validator.

        Args:
            config: Identity provider configuration
            session: HTTP session to use; a new one is created when omitted
        """
        self.config = config or IdentityProviderConfig()
        self.base_url = self.config.url.rstrip('/')
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                'Accept': 'application/vnd.github+json',
                'X-GitHub-Api-Version': '2022-11-28',
                'User-Agent': 'repo-migrate/0.1.0',
            }
        )
        self.cache = LicenseCache()
        self.ttl = timedelta(seconds=self.config.license_ttl_seconds)
        self.error_ttl = timedelta(seconds=self.config.error_ttl_seconds)
        self.logger = logger.bind(component='LicenseValidator')

    def check_license(self, user_login: str, token: str) -> LicenseStatus:
        """Check a user's license, using the cache when fresh.

        Failures are never raised; they are returned and cached briefly as
        a negative status with ``error`` set.

        Args:
            user_login: User login, used as the cache key
            token: Bearer token of the user

        Returns:
            License status
        """
        cached = self.cache.get(user_login)
        if cached is not None:
            self.logger.debug(f'Using cached license status for {user_login}')
            return cached

        try:
            status = self._query_license_status(user_login, token)
        except (requests.RequestException, UpstreamServiceError, ValueError) as e:
            self.logger.warning(f'License check failed for {user_login}: {e}')
            now = datetime.now()
            status = LicenseStatus(
                valid=False,
                has_seat=False,
                message='Failed to verify license',
                checked_at=now,
                expires_at=now + self.error_ttl,
                error=str(e),
            )

        self.cache.set(user_login, status)
        return status

    def invalidate(self, user_login: str) -> None:
        """Drop the cached status of a user."""
        self.cache.invalidate(user_login)

    def _get(self, path: str, token: str) -> requests.Response:
        return self.session.get(
            f'{self.base_url}{path}',
            headers={'Authorization': f'Bearer {token}'},
            timeout=self.config.timeout,
        )

    def _query_license_status(self, user_login: str, token: str) -> LicenseStatus:
        """Query the identity provider.

        Raises:
            requests.RequestException: On transport failure
            UpstreamServiceError: On an unexpected status code
            ValueError: If the seat response cannot be parsed
        """
        self.logger.debug(f'Checking license for {user_login} via {self.base_url}')

        response = self._get('/user', token)
        if response.status_code != 200:
            raise UpstreamServiceError(
                f'identity provider returned status {response.status_code}: {response.text}',
                status_code=response.status_code,
            )

        seat = self._get(self.config.seat_path, token)
        now = datetime.now()

        if seat.status_code == 404:
            return LicenseStatus(
                valid=False,
                has_seat=False,
                message='No license seat assigned to this user',
                checked_at=now,
                expires_at=now + self.ttl,
            )

        if seat.status_code in (401, 403):
            return LicenseStatus(
                valid=False,
                has_seat=False,
                message='Unable to verify license - insufficient permissions',
                checked_at=now,
                expires_at=now + self.ttl,
                error=seat.text,
            )

        if seat.status_code != 200:
            raise UpstreamServiceError(
                f'seat endpoint returned status {seat.status_code}: {seat.text}',
                status_code=seat.status_code,
            )

        data = seat.json()
        if not isinstance(data, dict):
            raise ValueError('unexpected seat response format')

        status = LicenseStatus(
            valid=True,
            has_seat=True,
            seat_type=data.get('seat_type'),
            assigned_at=data.get('created_at'),
            message='License seat assigned',
            checked_at=now,
            expires_at=now + self.ttl,
        )
        pending = data.get('pending_cancellation_date')
        if pending:
            status.message = f'License seat assigned (pending cancellation on {pending})'

        self.logger.info(f'License check complete for {user_login}: valid={status.valid}')
        return status
