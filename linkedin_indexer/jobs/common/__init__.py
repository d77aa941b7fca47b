from linkedin_indexer.jobs.common.base import CycleStats, Stopwatch, jitter_delay

__all__ = ["CycleStats", "Stopwatch", "jitter_delay"]
