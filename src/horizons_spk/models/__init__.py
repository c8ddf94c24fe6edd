from horizons_spk.models.outcome import AbortReason, Outcome, OutcomeStatus
from horizons_spk.models.spk import SpkFormat, SpkRequest

__all__ = ["AbortReason", "Outcome", "OutcomeStatus", "SpkFormat", "SpkRequest"]
