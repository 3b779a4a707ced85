"""Error taxonomy for the estimation and street-image pipelines.

Only NoCandidates / NoResolution / InvalidRequest ever reach a client.
SourceUnavailable is caught where it happens and downgraded to "no results".
"""
from __future__ import annotations


class GeoLocateError(Exception):
    code = "error"
    message = "unexpected error"

    def __init__(self, message: str | None = None):
        if message:
            self.message = message
        super().__init__(self.message)


class SourceUnavailable(GeoLocateError):
    """One upstream call failed (network, HTTP status, payload)."""
    code = "source_unavailable"

    def __init__(self, source: str, reason: str):
        self.source = source
        self.reason = reason
        super().__init__(f"{source}: {reason}")


class NoCandidates(GeoLocateError):
    code = "no_candidates"
    message = "could not find location information; try a clearer photo."


class NoResolution(GeoLocateError):
    code = "no_resolution"
    message = "location not found; try a photo with clear text or landmarks."


class InvalidRequest(GeoLocateError):
    code = "invalid_request"
    message = "invalid request"
