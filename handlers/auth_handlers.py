import uuid
from typing import Optional, Union

from eth_account import Account
from eth_account.messages import encode_defunct, defunct_hash_message
from hexbytes import HexBytes


def build_update_message(address: str, token_id: Union[int, str], image_url: str, nonce: Optional[str] = None) -> str:
    """
    Build the text a wallet signs to request an avatar update.

    The server accepts any signed message; this is the layout the frontend
    uses, with a random nonce so two requests never display the same payload.
    """
    nonce = nonce or str(uuid.uuid4())
    return "\n".join([
        f"Address: {address}",
        f"TokenID: {token_id}",
        f"ImageURL: {image_url}",
        f"Nonce: {nonce}",
    ])


def hash_message(message: str) -> HexBytes:
    """EIP-191 personal message hash, as passed to EIP-1271 wallets."""
    return HexBytes(defunct_hash_message(text=message))


def recover_signer(message: str, signature: Union[str, bytes]) -> Optional[str]:
    """Recover the EOA that produced signature over message, or None if it can't be recovered."""
    try:
        msg = encode_defunct(text=message)
        return Account.recover_message(msg, signature=signature)
    except Exception:
        return None


def verify_signature(signed_message: Union[str, bytes], wallet_address: str, message: str) -> bool:
    recovered_address = recover_signer(message, signed_message)
    if recovered_address is None:
        return False
    return recovered_address.lower() == wallet_address.lower()


def sign_message(message: str, private_key: Union[str, bytes]) -> str:
    """Sign message with a local key. Used by the smoke test runner and the test suite."""
    signed = Account.sign_message(encode_defunct(text=message), private_key=private_key)
    return "0x" + bytes(signed.signature).hex()
