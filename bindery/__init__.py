"""Bindery core package.

Modules:
- scanner: filesystem walk and content hashing (snapshots)
- snapshot: snapshot diff (added / removed / moved)
- epub, comicinfo, extractor: document metadata extraction
- mapper: metadata to catalog items
- sync: reconciliation pass over one catalog transaction
- models, repository, database: SQLite catalog via SQLModel
- monitor: Watchdog-based filesystem monitoring
- config: INI parsing and config object
"""
