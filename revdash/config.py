import os

# Point the pipeline at a different snapshot directory or output file with:
#   REVDASH_RAW_DIR=/data/raw REVDASH_OUTPUT_PATH=/srv/dashboard/data.json
RAW_DIR = os.environ.get("REVDASH_RAW_DIR", "raw")
OUTPUT_PATH = os.environ.get("REVDASH_OUTPUT_PATH", "data.json")
LOG_LEVEL = os.environ.get("REVDASH_LOG_LEVEL", "INFO")

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Raw snapshot filenames written by the fetchers
RAW_FILES = {
    "ads": "google-ads.json",
    "deals": "hubspot-deals.json",
    "ga4": "ga4.json",
    "charges": "stripe-charges.json",
    "subscriptions": "stripe-subs.json",
}
