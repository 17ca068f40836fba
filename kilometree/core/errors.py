"""Error taxonomy shared by the tracker, the controller and integrations."""

from __future__ import annotations


class KilometreeError(Exception):
    pass


class InvalidInput(KilometreeError, ValueError):
    """Step count that is not a non-negative integer."""


class MissingConfiguration(KilometreeError):
    """Integration invoked before the settings it needs were provided."""


class ExternalServiceFailure(KilometreeError):
    """A remote collaborator (Google API, webhook, fitness source) failed."""
