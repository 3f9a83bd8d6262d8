"""Workflow and application stores, in memory and backed by an SQLite key-value file."""