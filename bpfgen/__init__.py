"""Generate bpftrace scripts from templates using static facts about a target binary."""

__version__ = "0.1.0"
