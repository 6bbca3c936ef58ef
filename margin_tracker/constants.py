APP_NAME = "Sales Margin Tracker"
STYLE_FILE = "resources/styles.qss"

DATA_DIR = "data"
DB_FILE_NAME = "margin_tracker.db"
LOG_DIR = "logs"
EVENT_LOG_FILE = "margin_tracker.log"

TABLE_SCHEMA_VERSION = "schema_version"
SCHEMA_VERSION = "1"

# ---- Enumerations ----
CHANNEL_SUN_STORE = "Sun.store"
CHANNEL_SOLARTRADERS = "Solartraders"
CHANNEL_DIRECT = "Direct"
CHANNEL_OTHER = "Other"
CHANNELS = (CHANNEL_SUN_STORE, CHANNEL_SOLARTRADERS, CHANNEL_DIRECT, CHANNEL_OTHER)

PAYMENT_STRIPE = "Stripe"
PAYMENT_WIRE = "Wire"
PAYMENT_PAYPAL = "PayPal"
PAYMENT_CASH = "Cash"
PAYMENT_METHODS = (PAYMENT_STRIPE, PAYMENT_WIRE, PAYMENT_PAYPAL, PAYMENT_CASH)

CATEGORY_INVERTERS = "Inverters"
CATEGORY_SOLAR_PANELS = "Solar Panels"
CATEGORY_BATTERIES = "Batteries"
CATEGORY_ACCESSORIES = "Accessories"
CATEGORIES = (CATEGORY_INVERTERS, CATEGORY_SOLAR_PANELS, CATEGORY_BATTERIES, CATEGORY_ACCESSORIES)

# Fallbacks used when normalizing imported/raw records
DEFAULT_CHANNEL = CHANNEL_OTHER
DEFAULT_PAYMENT_METHOD = PAYMENT_WIRE
DEFAULT_CATEGORY = CATEGORY_ACCESSORIES

# ---- Tax ----
FRANCE = "France"
FRANCE_ALIASES = frozenset({"france", "fr", "fra", "republique francaise"})
FRANCE_VAT_RATE = 0.20

# ---- Channel rules ----
# (channel, category) pairs for which a power rating (Wp) is mandatory.
POWER_WP_REQUIRED = frozenset({(CHANNEL_SOLARTRADERS, CATEGORY_SOLAR_PANELS)})

SOLARTRADERS_STANDARD_RATE = 0.05
SOLARTRADERS_LARGE_PANEL_WP = 1_000_000
SOLARTRADERS_CENT_PER_WP = 0.015
SOLARTRADERS_LARGE_CENT_PER_WP = 0.01

# (channel, payment_method) -> (rate, fixed amount)
PAYMENT_FEE_RULES = {
    (CHANNEL_SUN_STORE, PAYMENT_STRIPE): (0.0, 5.0),
}

# Sun.store charges one flat processing fee per order, however many lines it has.
SUN_STORE_ORDER_PAYMENT_FEE = 5.0

# ---- Stock ----
LOW_STOCK_THRESHOLD = 5

# ---- Sync ----
SYNC_DEBOUNCE_MS = 1200
CATALOG_REFRESH_MS = 15 * 60 * 1000
SYNC_STATE_SYNCED = "synced"
SYNC_STATE_CONFLICT = "conflict"
SYNC_STATE_DISABLED = "disabled"
DEFAULT_REMOTE_TABLE = "sales_margin_state"
DEFAULT_STORE_ID = "default-store"
HTTP_TIMEOUT_SECONDS = 30

# ---- Catalog ----
DEFAULT_CATALOG_URL = "https://yohand-byte.github.io/huawei-pricing-calculator/"
AED_PER_USD = 3.6725
