"""Error taxonomy shared by services and the HTTP layer."""


class DeloreanError(Exception):
    """Base error carrying the HTTP status it maps to."""

    status_code = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(DeloreanError):
    """Upload shape, size or type was rejected."""

    status_code = 400


class AssetNotFound(DeloreanError):
    """No asset exists for the requested id."""

    status_code = 404

    def __init__(self, asset_id: str) -> None:
        super().__init__(f"Asset not found: {asset_id}")
        self.asset_id = asset_id


class TunnelNotFound(DeloreanError):
    """No open tunnel session exists for the requested token."""

    status_code = 404

    def __init__(self, tunnel_id: str) -> None:
        super().__init__(f"Tunnel session not found: {tunnel_id}")
        self.tunnel_id = tunnel_id


class AssetMissing(DeloreanError):
    """The asset record exists but its backing file is gone."""

    status_code = 410


class ProviderUnavailable(DeloreanError):
    """An external provider is not configured."""

    status_code = 503


class ProviderError(DeloreanError):
    """An external provider call failed or returned nothing usable."""

    status_code = 502


class InternalError(DeloreanError):
    """Unexpected failure inside the application."""

    status_code = 500
