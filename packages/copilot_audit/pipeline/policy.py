"""Per-stage failure policy for the ingestion pipeline."""

from __future__ import annotations

from enum import Enum

from ..config import PipelineConfig


class StagePolicy(Enum):
    """How a stage failure affects the invocation.

    - FATAL: the failure aborts the invocation
    - DEGRADE: the failure is logged and the stage yields an empty result
    """

    FATAL = "fatal"
    DEGRADE = "degrade"


class Stage(str, Enum):
    """Named steps of one ingestion invocation, in execution order."""

    TOKEN = "token"
    SUBSCRIPTION = "subscription"
    LISTING = "listing"
    FETCH = "fetch"
    DELIVERY = "delivery"


def resolve_policies(config: PipelineConfig) -> dict[Stage, StagePolicy]:
    """Return the policy for every stage.

    Token acquisition and delivery are always fatal; the others come from
    configuration.
    """
    return {
        Stage.TOKEN: StagePolicy.FATAL,
        Stage.SUBSCRIPTION: StagePolicy(config.subscription_policy),
        Stage.LISTING: StagePolicy(config.listing_policy),
        Stage.FETCH: StagePolicy(config.fetch_policy),
        Stage.DELIVERY: StagePolicy.FATAL,
    }
