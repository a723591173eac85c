"""
Avatar Resolution

Key Components:
- scheme.py: Scheme matching, IPFS gateway translation, token pointer parsing
- abi.py: ABI word padding and return value decoding
- token.py: ERC-721 ownership / ERC-1155 balance checks and metadata URI lookup
- metadata.py: Metadata document fetch and image URL extraction
- avatar.py: The per-account resolution pipeline
- __main__.py: CLI interface for resolution

Linkage steps appended along the way, in order:
account, then url (https/data), or url-ipfs and url (ipfs), or
erc721/erc1155, owner/balance, metadata-url-base, metadata-url-expanded (ERC-1155 only),
metadata-url, metadata, url-ipfs (IPFS images only), url.
"""
