"""
.bit Avatar Resolver

Resolves the `profile.avatar` record of a .bit account into a displayable image URL,
together with a linkage trail showing how the URL was derived.

Key Components:
- resolve: URI scheme matching, ABI decoding, NFT verification, metadata lookup and the
  resolution pipeline tying them together
- chain: JSON-RPC clients for Ethereum-compatible nodes and the .bit indexer
- model: Linkage, token pointer and outcome types
- app: aiohttp web service, configuration and metrics

Resolution Flow:
1. Fetch the account's avatar record
2. Match it against https, data, ipfs and eip155 NFT references, in that order
3. https and data references are returned as-is; ipfs references go through a gateway
4. NFT references are checked against the account's owner key (ERC-721 ownerOf or
   ERC-1155 balanceOf), then the token metadata URI is read, fetched, and its image
   field resolved the same way

Every failure collapses to "no avatar" for callers. Results are never cached and failed
calls are never retried.
"""
