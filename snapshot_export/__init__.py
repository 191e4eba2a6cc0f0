"""Community Snapshot Export Pipeline.

Builds one portable SQLite snapshot per community (tenant) from the
federated feature graph and relational reference tables, compresses it,
and publishes it to Azure Blob Storage for offline consumption.
"""

__version__ = "0.1.0"
