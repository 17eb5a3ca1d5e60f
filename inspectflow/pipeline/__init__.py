"""Calendar import pipeline.

One batch: fetch → parse/match/score in parallel → route each event in its
own savepoint → assign auto-created jobs → write the import log row.
"""
