"""
KPI: Overview

Counts total watches plus distinct channels and topics across the
filtered records.
"""

from aggcache.models.aggregation import AggregationComputeContext
from aggcache.models.stats.KpiMetrics import KpiMetrics


def compute_kpi_overview(context: AggregationComputeContext) -> KpiMetrics:
    channels = {r.channel_title for r in context.records if r.channel_title}
    topics = {topic for r in context.records for topic in r.topics}
    return KpiMetrics(
        total_videos=len(context.records),
        unique_channels=len(channels),
        unique_topics=len(topics),
    )
