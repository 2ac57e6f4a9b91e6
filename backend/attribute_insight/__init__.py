"""EAV attribute intelligence: fill rates, duplicates, format chaos, merges and set migration."""
