"""Services that run the simulation core across ensembles."""

from .ensemble_service import EnsembleService

__all__ = ["EnsembleService"]
