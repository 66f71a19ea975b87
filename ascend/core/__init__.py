"""Auction core: configuration, ledger, payments, storage"""
