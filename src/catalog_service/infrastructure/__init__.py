"""Infrastructure adapters: database, Magento, Redis."""
