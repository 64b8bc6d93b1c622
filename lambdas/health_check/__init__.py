"""
HealthCheck Lambda

Fixed 200 response proving the worker is deployed and reachable.
"""

from lambdas.health_check.handler import HEALTH_BODY, lambda_handler

__all__ = ["HEALTH_BODY", "lambda_handler"]
