from __future__ import annotations

import logging

from core.errors import GatewayError
from reports.delegation import Delegation, DelegationStrategy, HeaderDelegation, StreamDelegation, URLDelegation
from reports.locator import LocatorResolver, ObjectLocator

log = logging.getLogger(__name__)


class ReportFileGateway:
    """
    resolve -> delegate, with one log line per outcome.

    Every failure leaves as a GatewayError subclass; translating those into
    status codes is the router's job.
    """

    def __init__(self, resolver: LocatorResolver, strategy: DelegationStrategy):
        self.resolver = resolver
        self.strategy = strategy

    @property
    def strategy_name(self) -> str:
        return self.strategy.name

    def retrieve(self, identifier: str) -> Delegation:
        locator = None
        try:
            locator = self.resolver.resolve(identifier)
            delegation = self.strategy.delegate(locator)
        except GatewayError as exc:
            log.error(
                "Report file %r failed (%s) locator=%s cause=%r",
                identifier,
                type(exc).__name__,
                locator.path if locator else None,
                exc.original_error or exc,
            )
            raise

        log.info("OUTGOING: %s", _describe(identifier, locator, delegation))
        return delegation


def _describe(identifier: str, locator: ObjectLocator, delegation: Delegation) -> str:
    # Never include the authorization value or the presigned query.
    if isinstance(delegation, HeaderDelegation):
        return f"id={identifier} strategy=header redirect={delegation.redirect_path} filename={delegation.filename}"
    if isinstance(delegation, URLDelegation):
        return (
            f"id={identifier} strategy=presigned locator={locator.path} "
            f"expires_at={delegation.expires_at.isoformat()} filename={delegation.filename}"
        )
    if isinstance(delegation, StreamDelegation):
        return f"id={identifier} strategy=stream locator={locator.path} content_type={delegation.content_type}"
    return f"id={identifier} delegation={type(delegation).__name__}"
