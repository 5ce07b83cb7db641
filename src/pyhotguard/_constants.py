"""Internal constants shared across the library."""

USER_AGENT = "pyhotguard"

DEFAULT_FAILOVER_ENDPOINT = "https://backup-cdn.example.com/hotupdate"
DEFAULT_FAILOVER_PROBABILITY = 0.5
DEFAULT_BLOCKED_COUNTRIES: frozenset[str] = frozenset({"JP", "TW"})
DEFAULT_DOMAIN_WHITELIST: tuple[str, ...] = ("s3.amazonaws.com", "cloudfront.net")

IP_GEOLOCATION_URL = "https://ipapi.co/country/"
IP_GEOLOCATION_TIMEOUT: float = 3.0
REMOTE_POLICY_TIMEOUT: float = 5.0

# OS-level machine identifiers, in lookup order.
MACHINE_ID_PATHS: tuple[str, ...] = ("/etc/machine-id", "/var/lib/dbus/machine-id")
