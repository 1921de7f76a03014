"""Exceptions raised for caller mistakes. Data problems go to ``Diagnostics`` instead."""


class ReqflowError(Exception):
    """Base class for reqflow errors."""


class IngestError(ReqflowError):
    """A payload record cannot be turned into an entity or group."""


class UnknownStrategyError(ReqflowError):
    """The requested layout strategy does not exist."""
