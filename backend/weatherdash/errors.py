class WeatherError(Exception):
    """Base class for failures while acquiring weather data."""

    kind = "error"


class NetworkError(WeatherError):
    """Upstream call failed, timed out or returned a non-success status."""

    kind = "network"


class MalformedResponseError(WeatherError):
    """Upstream payload is missing required fields or is inconsistent."""

    kind = "malformed_response"


class StorageError(WeatherError):
    """Backing key/value store could not be read or written."""

    kind = "storage"
