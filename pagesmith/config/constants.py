"""Application-wide constants."""

APP_NAME = "Pagesmith"
APP_VERSION = "0.1.0"
ORG_NAME = "Pagesmith"
ORG_DOMAIN = "pagesmith.org"

# Page (workspace) defaults
DEFAULT_PAGE_WIDTH = 800
DEFAULT_PAGE_HEIGHT = 600
DEFAULT_PAGE_FILL = "#ffffff"

# Live snapping
SNAP_THRESHOLD = 10

# Grid snapping
GRID_SIZE_DEFAULT = 50
GRID_SNAP_THRESHOLD = 10

# Crop handles never shrink the visible region below this many local units
MIN_CROP_EXTENT = 10.0

# Undo/redo log depth
HISTORY_MAX_DEPTH = 50

# Quiet period before a continuous edit (drag, slider) becomes a history entry
COMMIT_DEBOUNCE_MS = 500

# Clipboard
PASTE_OFFSET = 10.0

# Arrow-key nudge
NUDGE_STEP = 1.0
NUDGE_STEP_LARGE = 10.0

# Tolerance used when comparing geometry
GEOMETRY_EPSILON = 1e-9

# File format
PROJECT_EXTENSION = ".pgs"
PROJECT_FORMAT_VERSION = 1

# Default object properties
DEFAULT_OBJECT_SIZE = 100.0
DEFAULT_FILL_COLOR = "#3b82f6"
DEFAULT_STROKE_COLOR = ""
DEFAULT_STROKE_WIDTH = 0.0
DEFAULT_FONT_FAMILY = "Inter"
DEFAULT_FONT_SIZE = 32
DEFAULT_TEXT_COLOR = "#000000"

# Default shadow applied when a shadow.* property is first set
DEFAULT_SHADOW = {"color": "#000000", "blur": 10.0, "offset_x": 5.0, "offset_y": 5.0}
