"""Error taxonomy for the price hunter pipeline."""


class PriceHunterError(Exception):
    """Base class for pipeline errors."""


class InvalidRequest(PriceHunterError):
    """Missing or malformed request parameter. Fatal to the request (HTTP 400)."""


class OracleUnavailable(PriceHunterError):
    """An oracle could not answer: missing credential, bad response or unparsable JSON.

    Always non-fatal; callers apply the oracle's documented fallback.
    """

    def __init__(self, oracle: str, reason: str):
        super().__init__(f"{oracle}: {reason}")
        self.oracle = oracle
        self.reason = reason


class AdapterError(PriceHunterError):
    """Network, timeout, HTTP status or parse failure inside a source adapter.

    Never escapes an adapter; it is converted to ``AdapterResult.error``.
    """

    def __init__(self, code: str):
        super().__init__(code)
        self.code = code
