"""
SQS Job Queue Adapter

Bridges Amazon SQS (at-least-once delivery, visibility-timeout leases) to a
queue-job execution model: enqueue work, deliver it to handlers, and let
handlers delete, release or fail each job.
"""

__version__ = "1.0.0"
