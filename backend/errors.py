"""
Error taxonomy for the draft assistant.

Each error carries the HTTP status the API layer maps it to, so route
handlers can let them propagate and a single exception handler in
server.py turns them into {"message": ...} responses.
"""


class DraftAssistantError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ConfigurationError(DraftAssistantError):
    """Malformed draft configuration: non-bijective slot assignment,
    trade referencing a roster that owns no slot, bad mock draft setup."""
    status_code = 400


class InvalidRequest(DraftAssistantError):
    """Missing or contradictory request parameters."""
    status_code = 400


class NotFoundError(DraftAssistantError):
    status_code = 404


class UpstreamUnavailable(DraftAssistantError):
    """A collaborator fetch (Sleeper, KeepTradeCut) failed."""
    status_code = 500


class ValuationError(ValueError):
    """A scraped or curated valuation record failed validation.

    Raised inside the ingestion boundary only; callers quarantine the
    record rather than letting this reach the API.
    """
