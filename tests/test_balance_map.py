import pytest

from distributor_api.balances import parse_balance_map
from distributor_api.crypto import parse_quantity, to_hex_quantity
from distributor_api.errors import AlreadyClaimed, InvalidBalanceMap


def test_hex_quantity_format():
    assert to_hex_quantity(0) == "0x00"
    assert to_hex_quantity(200) == "0xc8"
    assert to_hex_quantity(300) == "0x012c"
    assert to_hex_quantity(750) == "0x02ee"
    assert parse_quantity("0x012c") == 300
    assert parse_quantity("300") == 300
    with pytest.raises(ValueError):
        parse_quantity(1.5)


@pytest.fixture
def balances(wallets):
    return {
        wallets[0].address: 200,
        wallets[1].address: 300,
        wallets[2].address: 250,
    }


def test_parse_balance_map_shape(balances):
    info = parse_balance_map(balances)
    assert info.token_total == "0x02ee"
    assert info.merkle_root.startswith("0x") and len(info.merkle_root) == 66
    ordered = sorted(balances)
    for account, amount in balances.items():
        claim = info.claims[account]
        assert claim.index == ordered.index(account)
        assert claim.amount == to_hex_quantity(amount)
        assert claim.flags is None
    # three leaves: one is carried up alone, the other two need two siblings
    assert sorted(len(c.proof) for c in info.claims.values()) == [1, 2, 2]


def test_artifact_json_uses_camel_case(balances):
    data = parse_balance_map(balances).to_json_dict()
    assert set(data) == {"merkleRoot", "tokenTotal", "claims"}
    assert all("flags" not in c for c in data["claims"].values())


def test_all_claims_work_exactly_once(balances, deploy, token):
    info = parse_balance_map(balances)
    d = deploy(info.merkle_root, fund=parse_quantity(info.token_total))
    for account, claim in info.claims.items():
        amount = parse_quantity(claim.amount)
        d.claim(claim.index, account, amount, claim.proof)
        with pytest.raises(AlreadyClaimed):
            d.claim(claim.index, account, amount, claim.proof)
    assert token.balance_of(d.address) == 0


def test_checksums_and_accepts_lowercase(wallets):
    info = parse_balance_map({wallets[0].address.lower(): "0x64"})
    assert list(info.claims) == [wallets[0].address]
    assert info.claims[wallets[0].address].amount == "0x64"
    assert info.claims[wallets[0].address].proof == []


def test_rejects_invalid_address():
    with pytest.raises(InvalidBalanceMap, match="Found invalid address"):
        parse_balance_map({"0xnotanaddress": 1})


def test_rejects_duplicate_address(wallets):
    a = wallets[0].address
    with pytest.raises(InvalidBalanceMap, match="Duplicate address"):
        parse_balance_map({a: 1, a.lower(): 2})


@pytest.mark.parametrize("amount", [0, -1, "0x00", "abc"])
def test_rejects_bad_amount(wallets, amount):
    with pytest.raises(InvalidBalanceMap, match="Invalid amount"):
        parse_balance_map({wallets[0].address: amount})


def test_rejects_empty_map():
    with pytest.raises(InvalidBalanceMap):
        parse_balance_map({})


def test_new_format_flags(wallets):
    info = parse_balance_map(
        [
            {"address": wallets[0].address, "earnings": "0x64", "reasons": "socks,lp"},
            {"address": wallets[1].address, "earnings": "0x32", "reasons": ""},
        ]
    )
    assert info.claims[wallets[0].address].flags == {"isSOCKS": True, "isLP": True, "isUser": False}
    assert info.claims[wallets[1].address].flags is None
    assert info.token_total == "0x96"


def test_new_format_requires_fields(wallets):
    with pytest.raises(InvalidBalanceMap):
        parse_balance_map([{"address": wallets[0].address}])
