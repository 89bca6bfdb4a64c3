from django.conf import settings
from django.contrib.auth.hashers import BCryptSHA256PasswordHasher


class ConfiguredBCryptSHA256PasswordHasher(BCryptSHA256PasswordHasher):
    """bcrypt hasher whose work factor comes from ``settings.BCRYPT_ROUNDS``."""

    @property
    def rounds(self):
        return getattr(settings, "BCRYPT_ROUNDS", 12)
