"""iCal leave import pipeline.

Parses legacy calendar exports into PLD/SDV leave requests, matches names
against the member roster, flags duplicates, walks an administrator through
staged reconciliation and commits the approved batch to PocketBase.
"""
