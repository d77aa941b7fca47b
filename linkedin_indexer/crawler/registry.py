from typing import Optional

from linkedin_indexer.crawler.base import BaseContentSource

_registry: dict[str, type[BaseContentSource]] = {}


def register_source(name: str, source_class: type[BaseContentSource]) -> None:
    _registry[name] = source_class


def get_source(name: str) -> Optional[type[BaseContentSource]]:
    return _registry.get(name)


def available_sources() -> list[str]:
    return sorted(_registry)
