"""Client address handling: classification, anonymization and ISP lookups."""
