# ABOUTME: Configuration for credential resolution and metadata discovery
# ABOUTME: Holds default scopes, credential options and environment lookups

import os
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Union

# Read by google-auth during ambient credential discovery
GOOGLE_APPLICATION_CREDENTIALS = "GOOGLE_APPLICATION_CREDENTIALS"
GCLOUD_PROJECT = "GCLOUD_PROJECT"
GCE_METADATA_HOST = "GCE_METADATA_HOST"

METADATA_URL = "http://metadata.google.internal/computeMetadata/v1"

DEFAULT_SCOPES = [
    "https://www.googleapis.com/auth/cloud-platform",
]


class CredentialConfig:
    """Explicit credential options for an authorized request factory.

    At most one of ``key_file`` and ``credentials`` is expected. When both
    are given, ``key_file`` is used. When neither is given, credentials are
    discovered from the environment.
    """

    def __init__(
        self,
        key_file: Optional[Union[str, Path]] = None,
        credentials: Optional[Dict[str, Any]] = None,
    ):
        """Initialize credential options.

        Args:
            key_file: Path to a JSON credentials file
            credentials: Already-parsed JSON credentials
        """
        self.key_file = key_file
        self.credentials = credentials

    @classmethod
    def from_mapping(cls, options: Mapping[str, Any]) -> "CredentialConfig":
        """Build a config from a plain mapping.

        Accepts ``key_file`` or ``keyFile`` for the credentials path and
        ``credentials`` for in-memory JSON.
        """
        key_file = options.get("key_file", options.get("keyFile"))
        return cls(key_file=key_file, credentials=options.get("credentials"))

    @classmethod
    def coerce(
        cls, config: Optional[Union["CredentialConfig", Mapping[str, Any]]]
    ) -> Optional["CredentialConfig"]:
        """Return ``config`` as a CredentialConfig, or None if not given."""
        if config is None or isinstance(config, cls):
            return config
        return cls.from_mapping(config)

    def __repr__(self) -> str:
        # Never print credential material
        has_credentials = self.credentials is not None
        return (
            f"CredentialConfig(key_file={self.key_file!r}, "
            f"credentials={'<set>' if has_credentials else None})"
        )


def metadata_base_url() -> str:
    """Base URL of the metadata service, honouring GCE_METADATA_HOST."""
    host = os.getenv(GCE_METADATA_HOST)
    if host:
        return f"http://{host}/computeMetadata/v1"
    return METADATA_URL
