# Retention
MAX_AGE_HOURS = 48
MAX_AGE_S = MAX_AGE_HOURS * 60 * 60

# Clustering (kilometers)
MERGE_RADIUS_KM = 0.1
EARTH_RADIUS_KM = 6371.0

# Coordinate key precision for "same place" checks. None = exact match.
COORD_PRECISION = None

# submittingUser value of records synthesized by the merge engine
SYSTEM_USER = "0"

# Joins member descriptions of a merged record
DESCRIPTION_SEP = ", "

# Store collection paths
COLL_LIVE = "reports"
COLL_MERGED = "merged_reports"
COLL_TRASH = "reports_trash"
COLL_USERS = "users"
USER_TS_FIELD = "lastReportTimestamp"

# Timeouts
STORE_TIMEOUT_S = 25
