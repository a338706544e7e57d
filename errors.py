"""
Schema initialization errors.

Each error carries the process exit code the entry point reports it with.
"""


class SchemaError(Exception):
    exit_code = 1


class ConnectionFailure(SchemaError):
    """The database could not be reached."""
    exit_code = 2


class IndexConflict(SchemaError):
    """An index exists with the same name or keys but different options."""
    exit_code = 3

    def __init__(self, collection: str, index_name: str, detail: str):
        super().__init__(f"Index conflict on {collection}.{index_name}: {detail}")
        self.collection = collection
        self.index_name = index_name
        self.detail = detail


class DuplicateKeyOnSeed(SchemaError):
    """The placeholder collided with a unique index.

    init_schema logs it and moves on to the next collection.
    """

    def __init__(self, collection: str, detail: str = ""):
        super().__init__(f"Placeholder for '{collection}' hit a unique index {detail}".rstrip())
        self.collection = collection
