"""Topic configuration: which (region, subregion, topic) combinations to search."""

import json
import logging
import random
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field

logger = logging.getLogger(__name__)


class RegionConfig(BaseModel):
    """One region of the search space."""

    name: str
    subregions: Optional[list[str]] = None
    topics: list[str] = Field(default_factory=list)


class TopicConfig(BaseModel):
    """Mapping of region key to region config.

    Example:
        {"regions": {"nz": {"name": "New Zealand",
                            "subregions": ["wellington"],
                            "topics": ["rma", "it"]}}}
    """

    regions: dict[str, RegionConfig] = Field(default_factory=dict)


@dataclass(frozen=True)
class FetchTask:
    """One unit of scraping work."""

    topic: str
    region: str
    subregion: Optional[str] = None

    @property
    def label(self) -> str:
        if self.subregion:
            return f"{self.topic} / {self.region} / {self.subregion}"
        return f"{self.topic} / {self.region}"


def load_topics_config(path: str | Path) -> TopicConfig:
    """Read and validate the topic configuration file.

    Raises:
        FileNotFoundError: If the file does not exist
        pydantic.ValidationError: If the JSON does not match the schema
    """
    path = Path(path)
    data = json.loads(path.read_text(encoding="utf-8"))
    config = TopicConfig.model_validate(data)
    logger.debug(f"Loaded topic config from {path} ({len(config.regions)} regions)")
    return config


def expand_tasks(config: TopicConfig) -> list[FetchTask]:
    """Every (region, topic) pair, once per subregion when the region has any.

    An empty subregion list counts as no subregions.
    """
    tasks: list[FetchTask] = []
    for region_key, region in config.regions.items():
        for topic in region.topics:
            if region.subregions:
                for subregion in region.subregions:
                    tasks.append(FetchTask(topic=topic, region=region_key, subregion=subregion))
            else:
                tasks.append(FetchTask(topic=topic, region=region_key))
    return tasks


def build_fetch_tasks(config: TopicConfig, rng: Optional[random.Random] = None) -> list[FetchTask]:
    """Expand the config and shuffle the tasks uniformly.

    Shuffling keeps interrupted cycles from always covering the same prefix.
    """
    tasks = expand_tasks(config)
    (rng or random).shuffle(tasks)
    return tasks
