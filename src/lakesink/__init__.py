"""
Lakehouse Sink

Batches a stream of self-describing records from an in-process queue into a
versioned table store, tolerating schema changes and transient commit
failures.

Key components:
- core/: Record models, exceptions, the table writer interface, logging
- config/: Configuration loading
- schema/: Active schema tracking and null-stripped projections
- decode/: Payload decoding into rows
- runner/: Batch window, commit coordination and the writer loop
- storage/: Table writer implementations
"""

__version__ = "0.1.0"
