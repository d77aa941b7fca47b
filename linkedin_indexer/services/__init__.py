from linkedin_indexer.services.data_service import DataService
from linkedin_indexer.services.quota_service import QuotaTracker

__all__ = ["DataService", "QuotaTracker"]
