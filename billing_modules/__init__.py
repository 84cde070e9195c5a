"""
Billing modules -- service facades over the kernel and the engines.

Each module owns its transaction boundary: public mutating methods commit
on success and roll back (then re-raise) on any exception.
"""
