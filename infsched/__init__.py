"""
infsched - Reconciliation engine for InferenceScheduler objects

Turns one InferenceScheduler description into a model server, an endpoint
picker, an InferencePool and a Gateway route, keeps them converged and
reports readiness through status conditions.
"""

__version__ = "0.1.0"
__author__ = "Inference Platform Team"


__all__ = ["OperatorConfig", "load_config", "get_infsched_home"]

from .config import OperatorConfig, load_config, get_infsched_home
