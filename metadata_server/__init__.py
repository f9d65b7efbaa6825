"""
NFT Metadata Server

- Serves ERC-721 token metadata at /{token_id} and OpenSea contract metadata at /
- Pluggable producers behind the MetadataGenerator protocol
- LocalJson reads `{root}/{token_id}.json` and `{root}/contract.json` once, then serves from memory
"""
