"""
Default weighting tables.

These are representative business constants, not derived values. The engine
never reads them directly: they seed ScoringConfig / PrivacyConfig, which
can be overridden per call or through the environment.
"""

from types import MappingProxyType

from .models import Classification, Intensity

# "Critical" lobbies are 7x a casual "low" one
INTENSITY_WEIGHTS = MappingProxyType({
    Intensity.LOW: 1.0,
    Intensity.MEDIUM: 2.0,
    Intensity.HIGH: 4.0,
    Intensity.CRITICAL: 7.0,
})

# Pledge amount buckets as (label, exclusive upper bound); anything at or
# above the last bound falls into LARGEST_PLEDGE_BUCKET
PLEDGE_BUCKETS = (
    ("micro", 25.0),
    ("small", 100.0),
    ("medium", 500.0),
)
LARGEST_PLEDGE_BUCKET = "large"

# Likelihood that a paid pledge of a given size becomes a purchase
CONVERSION_RATES = MappingProxyType({
    "micro": 0.40,
    "small": 0.65,
    "medium": 0.80,
    "large": 0.90,
})

# Assumed conversion by lobby intensity (brand revenue projections)
INTENSITY_CONVERSION_RATES = MappingProxyType({
    Intensity.LOW: 0.05,
    Intensity.MEDIUM: 0.25,
    Intensity.HIGH: 0.45,
    Intensity.CRITICAL: 0.65,
})

# Minimum score for each band above COLD
SIGNAL_THRESHOLDS = MappingProxyType({
    Classification.WARM: 20.0,
    Classification.HOT: 50.0,
    Classification.VIRAL: 80.0,
})

MILESTONE_THRESHOLDS = MappingProxyType({
    "trending": 35.0,
    "notify_brand": 55.0,
    "high_signal": 70.0,
    "suggest_offer": 80.0,
})
