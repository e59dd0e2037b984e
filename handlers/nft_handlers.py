import logging
import os
from functools import lru_cache
from typing import Optional

from eth_abi import decode
from eth_abi.exceptions import DecodingError
from requests.exceptions import RequestException
from web3 import Web3
from web3.exceptions import BadFunctionCallOutput, ContractLogicError, Web3Exception

from errors import UpstreamError
from handlers.auth_handlers import hash_message, verify_signature

logger = logging.getLogger(__name__)

DEFAULT_RPC_URL = "https://api.mainnet.abs.xyz"

ERC721_ABI = [
    {
        "constant": True,
        "inputs": [{"name": "tokenId", "type": "uint256"}],
        "name": "ownerOf",
        "outputs": [{"name": "owner", "type": "address"}],
        "stateMutability": "view",
        "type": "function"
    }
]

ERC1271_ABI = [
    {
        "inputs": [
            {"name": "hash", "type": "bytes32"},
            {"name": "signature", "type": "bytes"}
        ],
        "name": "isValidSignature",
        "outputs": [{"name": "magicValue", "type": "bytes4"}],
        "stateMutability": "view",
        "type": "function"
    }
]

ERC1271_MAGIC_VALUE = bytes.fromhex("1626ba7e")

# Trailer of signatures produced by counterfactual (EIP-6492) wallets
ERC6492_MAGIC_SUFFIX = bytes.fromhex("64926492" * 8)

# Errors raised by web3 or its HTTP transport when the node can't answer
NODE_ERRORS = (Web3Exception, RequestException, ValueError)


class ChainReader:
    """
    Read-only access to the NFT contract and to wallet signature checks.

    Results are never cached: every call goes to the node.
    """

    def __init__(self, w3: Web3, contract_address: str):
        self.w3 = w3
        self.contract_address = Web3.to_checksum_address(contract_address)
        self.contract = w3.eth.contract(address=self.contract_address, abi=ERC721_ABI)

    def owner_of(self, token_id: int) -> Optional[str]:
        """
        Current owner of token_id, or None when ownerOf reverts (token not minted or burned).

        Raises:
            UpstreamError: If the node can't be reached or returns an error
        """
        try:
            return self.contract.functions.ownerOf(token_id).call()
        except ContractLogicError as e:
            logger.info(f"ownerOf({token_id}) reverted: {e}")
            return None
        except NODE_ERRORS as e:
            logger.error(f"ownerOf({token_id}) failed on {self.contract_address}: {e}")
            raise UpstreamError(f"Failed to read token owner: {e}") from e

    def verify_message(self, address: str, message: str, signature: str) -> bool:
        """
        Check that signature over message was produced by address.

        Plain EOA signatures are checked by recovery; anything else is handed to
        the wallet contract at address through EIP-1271. EIP-6492 wrapped
        signatures are unwrapped first and only succeed once the wallet is deployed.

        Raises:
            UpstreamError: If the node fails while checking a contract wallet
        """
        if not Web3.is_address(address):
            return False

        try:
            sig_bytes = bytes(Web3.to_bytes(hexstr=signature))
        except (TypeError, ValueError):
            return False

        if sig_bytes.endswith(ERC6492_MAGIC_SUFFIX):
            sig_bytes = self._unwrap_erc6492(sig_bytes)
            if sig_bytes is None:
                return False
        else:
            if verify_signature(sig_bytes, address, message):
                return True

        return self.is_valid_contract_signature(address, message, sig_bytes)

    def is_valid_contract_signature(self, address: str, message: str, signature: bytes) -> bool:
        checksum_address = Web3.to_checksum_address(address)

        try:
            code = self.w3.eth.get_code(checksum_address)
        except NODE_ERRORS as e:
            logger.error(f"get_code({checksum_address}) failed: {e}")
            raise UpstreamError(f"Failed to read wallet code: {e}") from e

        if not code:
            return False

        wallet = self.w3.eth.contract(address=checksum_address, abi=ERC1271_ABI)
        try:
            result = wallet.functions.isValidSignature(hash_message(message), signature).call()
        except (ContractLogicError, BadFunctionCallOutput) as e:
            logger.info(f"isValidSignature rejected by {checksum_address}: {e}")
            return False
        except NODE_ERRORS as e:
            logger.error(f"isValidSignature call to {checksum_address} failed: {e}")
            raise UpstreamError(f"Failed to verify wallet signature: {e}") from e

        return bytes(result) == ERC1271_MAGIC_VALUE

    @staticmethod
    def _unwrap_erc6492(signature: bytes) -> Optional[bytes]:
        """Extract the inner signature from abi.encode(factory, factoryCalldata, signature) ++ magic."""
        try:
            _factory, _factory_calldata, inner = decode(
                ["address", "bytes", "bytes"],
                signature[:-len(ERC6492_MAGIC_SUFFIX)]
            )
        except (DecodingError, ValueError) as e:
            logger.info(f"Malformed EIP-6492 signature: {e}")
            return None
        return bytes(inner)


@lru_cache(maxsize=1)
def get_chain_reader() -> ChainReader:
    """
    FastAPI dependency returning the process-wide chain reader.

    Only the connection is shared; no chain state is cached.
    """
    contract_address = os.getenv("CONTRACT_ADDRESS")
    if not contract_address:
        raise RuntimeError("Please define CONTRACT_ADDRESS")

    rpc_url = os.getenv("RPC_URL", DEFAULT_RPC_URL)
    w3 = Web3(Web3.HTTPProvider(rpc_url))
    logger.info(f"Reading NFT contract {contract_address} through {rpc_url}")
    return ChainReader(w3, contract_address)
