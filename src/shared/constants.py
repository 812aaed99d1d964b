"""Shared constants across the application."""

# Batch job identity
IMPORT_BATCH_TYPE = "import-magento"
IMPORT_STRATEGY_IDENTIFIER = "import-magento-strategy"

# Store metadata key holding the last successful sync timestamp
WATERMARK_METADATA_KEY = "source_bt"

# Magento custom attribute codes
URL_KEY_ATTRIBUTE = "url_key"
DESCRIPTION_ATTRIBUTE = "description"

# Magento product types
PRODUCT_TYPE_CONFIGURABLE = "configurable"
PRODUCT_TYPE_SIMPLE = "simple"

# Magento catalog visibility (1 = not visible individually)
VISIBILITY_NOT_VISIBLE = 1

# Magento product status (1 = enabled)
PRODUCT_STATUS_ENABLED = 1

# Magento date format used in searchCriteria filters
MAGENTO_DATETIME_FORMAT = "%Y-%m-%d %H:%M:%S"

# Cache keys
ATTRIBUTE_CACHE_PREFIX = "magento:attribute:"
SYNC_LOCK_PREFIX = "catalog-sync:lock:"
