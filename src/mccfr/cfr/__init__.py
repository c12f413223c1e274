"""Monte-Carlo CFR traversal engines and regret/strategy accounting."""

from mccfr.cfr.chance_sampling import ChanceSamplingCFR
from mccfr.cfr.policy import Policy
from mccfr.cfr.policy_table import PolicyTable, policy_table_registry
from mccfr.cfr.pool import FloatSlicePool, ThreadSafeFloatSlicePool
from mccfr.cfr.regret_matching import regret_matching, sample_action
from mccfr.cfr.robust_sampling import RobustSamplingCFR

__all__ = [
    "ChanceSamplingCFR",
    "RobustSamplingCFR",
    "Policy",
    "PolicyTable",
    "policy_table_registry",
    "FloatSlicePool",
    "ThreadSafeFloatSlicePool",
    "regret_matching",
    "sample_action",
]
