import os
from decimal import Decimal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, field_validator

# Load environment variables
load_dotenv()


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in ('1', 'true', 'yes', 'on')


class HarnessConfig(BaseModel):
    """
    Central configuration for the checkout harness.
    Timeouts are in milliseconds, matching Playwright's own options.
    """

    base_url: str = 'https://automationexercise.com'
    timeout_ms: int = Field(default=10_000, gt=0)
    navigation_timeout_ms: int = Field(default=30_000, gt=0)
    poll_interval_ms: int = Field(default=250, gt=0)
    overlay_attempts: int = Field(default=3, ge=1)
    dismiss_timeout_ms: int = Field(default=2_000, gt=0)
    timeout_retries: int = Field(default=1, ge=0)
    retry_backoff_ms: int = Field(default=1_000, ge=0)
    price_precision: int = Field(default=2, ge=0)
    price_epsilon: Decimal = Decimal('0')
    block_ads: bool = True
    headless: bool = True
    valid_email: str = 'valid@user.com'
    valid_password: str = 'Valid123!'
    account_domain: str = 'example.com'

    @field_validator('base_url')
    @classmethod
    def _strip_trailing_slash(cls, value: str) -> str:
        return value.rstrip('/')

    @field_validator('price_epsilon')
    @classmethod
    def _non_negative_epsilon(cls, value: Decimal) -> Decimal:
        if value < 0:
            raise ValueError('price_epsilon must be >= 0')
        return value

    @classmethod
    def from_env(cls, **overrides) -> 'HarnessConfig':
        """Build a config from HARNESS_* environment variables."""
        values = {
            'base_url': os.getenv('HARNESS_BASE_URL'),
            'timeout_ms': os.getenv('HARNESS_TIMEOUT_MS'),
            'navigation_timeout_ms': os.getenv('HARNESS_NAVIGATION_TIMEOUT_MS'),
            'poll_interval_ms': os.getenv('HARNESS_POLL_INTERVAL_MS'),
            'overlay_attempts': os.getenv('HARNESS_OVERLAY_ATTEMPTS'),
            'dismiss_timeout_ms': os.getenv('HARNESS_DISMISS_TIMEOUT_MS'),
            'timeout_retries': os.getenv('HARNESS_TIMEOUT_RETRIES'),
            'retry_backoff_ms': os.getenv('HARNESS_RETRY_BACKOFF_MS'),
            'price_precision': os.getenv('HARNESS_PRICE_PRECISION'),
            'price_epsilon': os.getenv('HARNESS_PRICE_EPSILON'),
            'valid_email': os.getenv('HARNESS_VALID_EMAIL'),
            'valid_password': os.getenv('HARNESS_VALID_PASSWORD'),
            'account_domain': os.getenv('HARNESS_ACCOUNT_DOMAIN'),
        }
        values = {key: value for key, value in values.items() if value is not None}
        values['block_ads'] = _env_bool('HARNESS_BLOCK_ADS', True)
        values['headless'] = _env_bool('HARNESS_HEADLESS', True)
        values.update(overrides)
        return cls(**values)

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"

    @property
    def timeout_s(self) -> float:
        return self.timeout_ms / 1000

    @property
    def navigation_timeout_s(self) -> float:
        return self.navigation_timeout_ms / 1000

    @property
    def poll_interval_s(self) -> float:
        return self.poll_interval_ms / 1000

    @property
    def dismiss_timeout_s(self) -> float:
        return self.dismiss_timeout_ms / 1000

    @property
    def retry_backoff_s(self) -> float:
        return self.retry_backoff_ms / 1000
