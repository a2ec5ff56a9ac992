"""
KPI: Top Channels

Ranks channels by number of watches in the filtered window.
"""

from collections import Counter

from aggcache.models.aggregation import AggregationComputeContext
from aggcache.models.stats.KpiMetrics import ChannelShare, TopChannels

TOP_CHANNELS_LIMIT = 10


def compute_top_channels(context: AggregationComputeContext) -> TopChannels:
    """
    Returns:
        TopChannels with at most TOP_CHANNELS_LIMIT entries, most watched
        first; ties are broken by channel name so output is stable.

    Example Output:
        {"channels": [{"channel": "Veritasium", "count": 12, "percentage": 40.0}],
         "total_watches": 30}
    """
    counts = Counter(r.channel_title for r in context.records if r.channel_title)
    total = sum(counts.values())

    ranked = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return TopChannels(
        channels=[
            ChannelShare(
                channel=channel,
                count=count,
                percentage=round((count / total * 100) if total > 0 else 0, 2),
            )
            for channel, count in ranked[:TOP_CHANNELS_LIMIT]
        ],
        total_watches=total,
    )


def validate_top_channels(result: TopChannels, context: AggregationComputeContext) -> None:
    if result.total_watches > len(context.records):
        raise ValueError("more channel watches than records")
    shown = sum(item.count for item in result.channels)
    if shown > result.total_watches:
        raise ValueError("channel counts exceed total watches")
