# SPDX-License-Identifier: MIT
# Copyright (c) 2026 Mycelix Contributors

"""Mycelix Trust - trust-weighted consensus for a peer-to-peer marketplace.

Peers earn a composite trust score from their transaction history, and
disputes between buyer and seller are settled by arbitrators whose votes
are weighted by that score (Mutual Reputation Consensus).

Architecture:
  Transaction outcome
    → TrustScoreEngine (PoGQ, reputation EMA, composite, Byzantine flags)
    → ScoreCache (TTL read-through, neutral default for unknown peers)
  Dispute
    → ArbitrationEngine (assign → vote → finalize)
    → loser's score fed back into the TrustScoreEngine

The engine is a library: storage, remote calls, identity, clock and
metrics are injected through the protocols in ``mycelix_trust.core.ports``.
"""

__version__ = "0.1.0"

from . import (
    arbitration as arbitration,
)
from . import (
    core as core,
)
from . import (
    reputation as reputation,
)
