"""Constants for the competitor scan pipeline."""

DEFAULT_CATEGORY = "General"

# Hex characters kept from the SHA-256 digest
FINGERPRINT_LENGTH = 32

DEFAULT_SITE_CAP = 5

USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/120.0.0.0 Safari/537.36"
)

REQUEST_HEADERS = {
    "User-Agent": USER_AGENT,
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.9",
}

BROWSER_LAUNCH_ARGS = [
    "--no-sandbox",
    "--disable-dev-shm-usage",
    "--disable-gpu",
    "--disable-setuid-sandbox",
    "--no-first-run",
    "--disable-extensions",
]

VIEWPORT = {"width": 1366, "height": 900}

NO_TITLE = "No title found"
NO_META_DESCRIPTION = "No meta description found"
NO_H1 = "No H1 found"
UNKNOWN_TECHNOLOGY = "Unknown"

# Clue caps keep the technology prompt small
MAX_SCRIPT_CLUES = 40
MAX_STYLESHEET_CLUES = 20

# (needle, technology) pairs checked against script srcs and the generator meta
TECH_SIGNATURES = [
    ("react", "React"),
    ("_next/", "Next.js"),
    ("vue", "Vue.js"),
    ("nuxt", "Nuxt"),
    ("angular", "Angular"),
    ("jquery", "jQuery"),
    ("shopify", "Shopify"),
    ("wp-content", "WordPress"),
    ("wordpress", "WordPress"),
    ("woocommerce", "WooCommerce"),
    ("squarespace", "Squarespace"),
    ("wix", "Wix"),
    ("webflow", "Webflow"),
    ("hubspot", "HubSpot"),
    ("gtag", "Google Analytics"),
    ("google-analytics", "Google Analytics"),
    ("googletagmanager", "Google Tag Manager"),
    ("segment.com", "Segment"),
    ("hotjar", "Hotjar"),
    ("stripe", "Stripe"),
    ("intercom", "Intercom"),
    ("cloudflare", "Cloudflare"),
]
