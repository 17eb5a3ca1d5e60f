"""Inspector assignment: candidate scoring, workload bookkeeping, audit history."""
