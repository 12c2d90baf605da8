"""Construct context keys understood by the AWS constructs."""

# List of partitions regional fact lookups should cover, or the literal
# string "undefined" to cover every known region.
TARGET_PARTITIONS = "terraconstructs/core:target-partitions"

# Prefix of pre-seeded availability zone lookups,
# e.g. "availability-zones:region=us-east-1".
AVAILABILITY_ZONES_CONTEXT_PREFIX = "availability-zones"
