"""Shared constants: store key layout and game-wide values."""

# Grid geometry (10 km cells)
CELL_SIZE_KM = 10.0
KM_PER_DEGREE_LAT = 111.0
KM_PER_DEGREE_LNG_EQUATOR = 111.32

UNKNOWN_COUNTRY = "XX"
ANONYMOUS_PLAYER = "anonymous"
DEFAULT_PIXEL_OPACITY = 0.6

# Store keys: revealed cells
REVEALED_CELLS_KEY = "revealed:cells"
REVEALED_TIMELINE_KEY = "revealed:timeline"
REVEALED_TOTAL_KEY = "revealed:total"
REVEALED_COUNTRY_COUNT_KEY = "country:revealed:count"
REVEALED_PLAYERS_COUNT_KEY = "revealed:players:count"

# Store keys: pixels
PIXELS_MAP_KEY = "pixels:map"
PIXELS_TIMELINE_KEY = "pixels:timeline"
PIXELS_TOTAL_KEY = "pixels:total"
PIXELS_COLORS_COUNT_KEY = "pixels:colors:count"
PIXELS_COUNTRY_COLOR_KEY = "pixels:country:color"
PIXELS_COUNTRY_TOTAL_KEY = "pixels:country:total"
PIXELS_PLAYERS_COUNT_KEY = "pixels:players:count"

PIXEL_KEYS = (
    PIXELS_MAP_KEY,
    PIXELS_TIMELINE_KEY,
    PIXELS_TOTAL_KEY,
    PIXELS_COLORS_COUNT_KEY,
    PIXELS_COUNTRY_COLOR_KEY,
    PIXELS_COUNTRY_TOTAL_KEY,
    PIXELS_PLAYERS_COUNT_KEY,
)

# Aggregate sizes
TOP_COLORS = 10
TOP_COUNTRIES_PER_COLOR = 5
TOP_COUNTRIES = 10
TOP_PLAYERS = 10
RECENT_ACTIVITY = 10

COLOR_NAMES = {
    "#ff0000": "Red",
    "#0000ff": "Blue",
    "#00ff00": "Green",
    "#ffff00": "Yellow",
    "#ffa500": "Orange",
    "#800080": "Purple",
    "#ffc0cb": "Pink",
    "#00ffff": "Cyan",
    "#000000": "Black",
    "#ffffff": "White",
}
OTHER_COLOR_NAME = "Other"
