ENV_VARS = {
    "hostname": "FARMOS_HOSTNAME",
    "username": "FARMOS_USERNAME",
    "password": "FARMOS_PASSWORD",
}


class MissingCredentialsError(RuntimeError):
    """Raised when the farmOS hostname, username or password is not configured."""

    def __init__(self, missing: list[str]):
        self.missing = missing
        names = [ENV_VARS.get(m, m) for m in missing]
        super().__init__("Missing required farmOS settings: " + ", ".join(names))


class StorageError(RuntimeError):
    """Raised when a batch of local upserts fails and has been rolled back."""


class FetchError(RuntimeError):
    """Raised when records could not be retrieved from farmOS."""
