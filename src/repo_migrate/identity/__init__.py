"""Identity, license and CLI availability checks."""

from .cli_probe import check_cli_available, validate_cli_path
from .license import LicenseCache, LicenseStatus, LicenseValidator

__all__ = [
    'check_cli_available',
    'validate_cli_path',
    'LicenseCache',
    'LicenseStatus',
    'LicenseValidator',
]
