"""Operator-facing message templates, grouped by the component that emits them."""


class MappingMessages:
    UNKNOWN_DOMAIN = "No enumeration domain named '{domain}'"
    UNMAPPED_VALUE = "Value '{value}' has no mapping in domain '{domain}'"


class SchemaMessages:
    TABLE_MISSING = "Destination table '{table}' does not exist"
    COLUMNS_MISSING = "Destination table '{table}' is missing required columns: {columns}"
    SOURCE_MISSING = "Source table '{table}' does not exist"
    SOURCE_OPTIONAL_MISSING = "Source table '{table}' does not exist, nothing to migrate"
    SOURCE_STRUCTURE_DIFFERS = "Source table '{table}' lacks columns {columns}, structure differs"
    SOURCE_COLUMNS_MISSING = "Source table '{table}' is missing required columns: {columns}"
    BACKFILL_COLUMN_MISSING = "Destination table '{table}' has no column '{column}', nothing to backfill"


class WriteMessages:
    FOREIGN_KEY = "Foreign key violation writing '{table}': {detail}"
    INTEGRITY = "Integrity error writing '{table}': {detail}"


class RewriteMessages:
    AMBIGUOUS = "'{table}' appears outside a data-access call; left unmodified"
