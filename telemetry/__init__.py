"""Multi-channel serial telemetry logger.

Modules are organized by the path a sample takes:
- acquisition: wire protocol parsing and the serial ingestion loop
- store: thread-safe per-channel series and receipt log
- snapshot: decimated, render-ready views of the store
- io: CSV export and the autosave scheduler
- app: wiring of the above into one running logger
- cli: command-line front end
"""
