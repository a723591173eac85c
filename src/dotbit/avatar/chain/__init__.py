"""
Chain and Indexer Clients

Key Components:
- rpc.py: JSON-RPC transport and the eth_call provider used for contract reads
- indexer.py: .bit indexer client for account info (owner key) and account records
"""
