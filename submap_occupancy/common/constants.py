"""
Submap occupancy constants only.

=============================================================================
CONVENTION QUICK REFERENCE
=============================================================================

POSES:
  Rigid3d = (translation xyz, quaternion xyzw)
  pose:       tile (submap) frame -> map frame
  slice_pose: texture (raster) frame -> tile frame

PIXELS (ARGB32, native-endian 32-bit word, premultiplied):
  word = (alpha << 24) | (intensity << 16) | (observed << 8) | 0
  intensity rides the red channel, observed rides the green channel.
  observed = 0 iff intensity == 0 and alpha == 0, else 255.

GRID:
  data is row-major, row 0 = canvas bottom row (vertical flip).
  values: -1 unknown, 0 free, 100 occupied.
=============================================================================
"""

# =============================================================================
# OUTPUT GRID
# =============================================================================

DEFAULT_RESOLUTION = 0.05  # meters per cell of the published occupancy grid

CELL_UNKNOWN = -1
CELL_FREE = 0
CELL_OCCUPIED = 100

# probability percent strictly above this is occupied
OCCUPIED_THRESHOLD_PERCENT = 50

# =============================================================================
# CANVAS
# =============================================================================

CANVAS_PADDING_PX = 5  # on each side of the bounding box

BYTES_PER_PIXEL = 4  # ARGB32

# Background paint, (r, g, b, a) in [0, 1]. Green (observed) is zero so that
# padding and gaps between tiles quantize to unknown.
CANVAS_BACKGROUND_RGBA = (0.5, 0.0, 0.0, 1.0)

OBSERVED_FLAG_SEEN = 255
OBSERVED_FLAG_UNSEEN = 0

# =============================================================================
# DENOISE
# =============================================================================

DENOISE_POLICY_DEFAULT = "none"
DENOISE_THRESHOLD_DEFAULT = 50
LOCAL_SUM_DIVISOR = 10
LOCAL_SUM_OCCUPIED_FRACTION = 0.1
MAJORITY_VOTE_RADIUS = 2  # 5x5 window

# =============================================================================
# ROS WIRING
# =============================================================================

SUBMAP_LIST_TOPIC_DEFAULT = "/submap_list"
SUBMAP_QUERY_SERVICE_DEFAULT = "/submap_query"
OCCUPANCY_GRID_TOPIC_DEFAULT = "/map"
LATEST_ONLY_PUBLISHER_QUEUE_SIZE = 1
FETCH_TIMEOUT_SEC_DEFAULT = 5.0
SERVICE_WAIT_TIMEOUT_SEC = 0.0  # do not block on a missing service; tile is retried next batch

RERUN_APPLICATION_ID = "submap_occupancy"
