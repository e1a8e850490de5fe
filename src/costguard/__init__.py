from .errors import EstimateError
from .estimator import estimate
from .model import EstimateInput, EstimateResult
from .policy import evaluate_policy
from .sanitize import sanitize
from .scanner import scan_workflow

__all__ = ["sanitize", "estimate", "EstimateError", "EstimateInput", "EstimateResult", "scan_workflow", "evaluate_policy"]
