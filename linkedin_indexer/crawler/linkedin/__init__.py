from linkedin_indexer.crawler.linkedin.scraper import LinkedInSource
from linkedin_indexer.crawler.registry import register_source

register_source("linkedin", LinkedInSource)

__all__ = ["LinkedInSource"]
