"""StoreRec: hybrid product recommendation engine with online learning.

This package re-ranks a product catalog for a single user from an
append-only interaction log, and incrementally trains a next-product
classifier on the sessions found in that log.

Modules:
    recommender: Scoring, session segmentation, training and persistence
    engine: Service object wiring the recommender and the online learner
    moderation: Comment moderation against an external toxicity oracle
"""

__version__ = "0.1.0"
