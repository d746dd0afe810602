"""Account domain services: ban state and account records.

The ban engine is pure; `service` performs the reads and whole-record
writes the admin, profile and identity surfaces need.
"""
