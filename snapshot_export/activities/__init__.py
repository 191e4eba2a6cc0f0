"""Pipeline activities.

Each activity performs a single unit of work for one export cycle:
- change_gate: Decide whether the scheduled cycle should rebuild
- load_reference: Read lookup tables from the relational source
- fetch_features: Fetch one community's feature graph
- normalize: Flatten feature records into snapshot rows
- build_snapshot: Write the SQLite snapshot file
- publish_snapshot: Compress and upload the snapshot
"""
