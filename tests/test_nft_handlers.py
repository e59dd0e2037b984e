from unittest.mock import MagicMock

import pytest
from eth_abi import encode
from eth_account import Account
from requests.exceptions import ConnectionError as RequestsConnectionError
from web3.exceptions import BadFunctionCallOutput, ContractLogicError

from errors import UpstreamError
from handlers.auth_handlers import hash_message, sign_message
from handlers.nft_handlers import (
    ERC1271_MAGIC_VALUE,
    ERC6492_MAGIC_SUFFIX,
    ChainReader,
    get_chain_reader,
)

CONTRACT_ADDRESS = "0x" + "11" * 20
WALLET_ADDRESS = "0x" + "22" * 20


@pytest.fixture
def w3():
    return MagicMock()


@pytest.fixture
def reader(w3):
    return ChainReader(w3, CONTRACT_ADDRESS)


def contract_call(w3, function_name):
    return getattr(w3.eth.contract.return_value.functions, function_name).return_value.call


# ============= OWNERSHIP =============
def test_owner_of_returns_owner(reader, w3):
    owner = Account.create().address
    contract_call(w3, "ownerOf").return_value = owner

    assert reader.owner_of(5) == owner
    w3.eth.contract.return_value.functions.ownerOf.assert_called_once_with(5)


def test_owner_of_revert_means_no_owner(reader, w3):
    contract_call(w3, "ownerOf").side_effect = ContractLogicError("execution reverted: invalid token ID")

    assert reader.owner_of(5) is None


def test_owner_of_node_failure(reader, w3):
    contract_call(w3, "ownerOf").side_effect = RequestsConnectionError("connection refused")

    with pytest.raises(UpstreamError) as exc_info:
        reader.owner_of(5)

    assert exc_info.value.status_code == 500


def test_owner_of_is_not_cached(reader, w3):
    first, second = Account.create().address, Account.create().address
    contract_call(w3, "ownerOf").side_effect = [first, second]

    assert reader.owner_of(5) == first
    assert reader.owner_of(5) == second


# ============= EOA SIGNATURES =============
def test_eoa_signature_needs_no_node(reader, w3):
    account = Account.create()
    signature = sign_message("hello", account.key)

    assert reader.verify_message(account.address, "hello", signature)
    w3.eth.get_code.assert_not_called()


def test_invalid_address_is_rejected(reader):
    account = Account.create()

    assert not reader.verify_message("not-an-address", "hello", sign_message("hello", account.key))


def test_non_hex_signature_is_rejected(reader, w3):
    assert not reader.verify_message(Account.create().address, "hello", "zz-not-hex")
    w3.eth.get_code.assert_not_called()


def test_wrong_signer_without_contract_code(reader, w3):
    w3.eth.get_code.return_value = b""
    signature = sign_message("hello", Account.create().key)

    assert not reader.verify_message(Account.create().address, "hello", signature)
    w3.eth.get_code.assert_called_once()


# ============= CONTRACT WALLET SIGNATURES =============
def test_erc1271_wallet_accepts(reader, w3):
    w3.eth.get_code.return_value = b"\x60\x80"
    contract_call(w3, "isValidSignature").return_value = ERC1271_MAGIC_VALUE

    assert reader.verify_message(WALLET_ADDRESS, "hello", "0x" + "ab" * 70)
    w3.eth.contract.return_value.functions.isValidSignature.assert_called_once_with(
        hash_message("hello"), bytes.fromhex("ab" * 70)
    )


def test_erc1271_wallet_rejects(reader, w3):
    w3.eth.get_code.return_value = b"\x60\x80"
    contract_call(w3, "isValidSignature").return_value = b"\xff\xff\xff\xff"

    assert not reader.verify_message(WALLET_ADDRESS, "hello", "0x" + "ab" * 70)


@pytest.mark.parametrize("error", [
    ContractLogicError("execution reverted"),
    BadFunctionCallOutput("no data"),
])
def test_erc1271_revert_is_invalid(reader, w3, error):
    w3.eth.get_code.return_value = b"\x60\x80"
    contract_call(w3, "isValidSignature").side_effect = error

    assert not reader.verify_message(WALLET_ADDRESS, "hello", "0x" + "ab" * 70)


def test_erc1271_node_failure(reader, w3):
    w3.eth.get_code.side_effect = RequestsConnectionError("connection refused")

    with pytest.raises(UpstreamError):
        reader.verify_message(WALLET_ADDRESS, "hello", "0x" + "ab" * 70)


def test_erc6492_signature_is_unwrapped(reader, w3):
    inner = bytes.fromhex("cd" * 65)
    wrapped = encode(["address", "bytes", "bytes"], [CONTRACT_ADDRESS, b"\x01\x02", inner]) + ERC6492_MAGIC_SUFFIX
    w3.eth.get_code.return_value = b"\x60\x80"
    contract_call(w3, "isValidSignature").return_value = ERC1271_MAGIC_VALUE

    assert reader.verify_message(WALLET_ADDRESS, "hello", "0x" + wrapped.hex())
    w3.eth.contract.return_value.functions.isValidSignature.assert_called_once_with(hash_message("hello"), inner)


def test_erc6492_undeployed_wallet_is_rejected(reader, w3):
    inner = bytes.fromhex("cd" * 65)
    wrapped = encode(["address", "bytes", "bytes"], [CONTRACT_ADDRESS, b"\x01\x02", inner]) + ERC6492_MAGIC_SUFFIX
    w3.eth.get_code.return_value = b""

    assert not reader.verify_message(WALLET_ADDRESS, "hello", "0x" + wrapped.hex())


def test_malformed_erc6492_signature(reader, w3):
    assert not reader.verify_message(WALLET_ADDRESS, "hello", "0x" + ("00" * 3) + ERC6492_MAGIC_SUFFIX.hex())
    w3.eth.get_code.assert_not_called()


# ============= CONFIGURATION =============
def test_get_chain_reader_requires_contract_address(monkeypatch):
    monkeypatch.delenv("CONTRACT_ADDRESS", raising=False)
    get_chain_reader.cache_clear()

    with pytest.raises(RuntimeError):
        get_chain_reader()


def test_get_chain_reader_is_shared(monkeypatch):
    monkeypatch.setenv("CONTRACT_ADDRESS", CONTRACT_ADDRESS)
    monkeypatch.setenv("RPC_URL", "http://127.0.0.1:8545")
    get_chain_reader.cache_clear()

    try:
        reader = get_chain_reader()
        assert reader is get_chain_reader()
        assert reader.contract_address == CONTRACT_ADDRESS
    finally:
        get_chain_reader.cache_clear()
