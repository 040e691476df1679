"""Recommendation module for StoreRec.

This module contains the content similarity scorer, the feature vectorizer,
the rule-based hybrid recommender, session segmentation, and the online
learner that trains a next-product classifier from interaction sessions.
"""
