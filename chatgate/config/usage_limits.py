"""
Usage Limits Configuration
Monthly invocation ceilings and the bucket key layout they are counted under.
"""

from chatgate.config.config import Config

# Monthly invocation ceilings (token counters are informational only)
MONTHLY_LIMIT_USER = Config.THROTTLE_MONTHLY_LIMIT_USER
MONTHLY_LIMIT_GLOBAL = Config.THROTTLE_MONTHLY_LIMIT_GLOBAL

# Buckets roll over at midnight UTC on the first day of each month
MONTHLY_RESET_DAY = 1

# Bucket key layout
USER_PARTITION_PREFIX = "USER"
GLOBAL_PARTITION_PREFIX = "GLOBAL"
RESOURCE_SORT_PREFIX = "MODEL"
KEY_SEPARATOR = "#"

QUOTA_EXCEEDED_MESSAGE = "User has exceeded the user or global monthly usage limit"
