import itertools

import pytest
from eth_utils import keccak

from distributor_api.crypto import encode_leaf, keccak256, leaf_hash
from distributor_api.errors import DuplicateIndex, UnknownIndex
from distributor_api.merkle import (
    BalanceTree,
    Entry,
    MerkleTree,
    build_root,
    combined_hash,
    verify_inclusion,
    verify_proof,
)

A = "0x1111111111111111111111111111111111111111"
B = "0x2222222222222222222222222222222222222222"
C = "0x3333333333333333333333333333333333333333"


def test_keccak_vectors():
    # Ethereum keccak256, not NIST sha3-256
    assert keccak256(b"").hex() == "c5d2460186f7233c927e7db2dcc703c0e500b653ca82273b7bfad8045d85a470"
    assert keccak256(b"abc").hex() == "4e03657aea45a94fc7d47ba826c8d667c0d1e6e33a64a036ec44f58fa12d6c45"


def test_leaf_encoding_layout():
    enc = encode_leaf(1, A, 2)
    assert len(enc) == 84
    assert enc.hex() == (
        "0000000000000000000000000000000000000000000000000000000000000001"
        "1111111111111111111111111111111111111111"
        "0000000000000000000000000000000000000000000000000000000000000002"
    )
    assert leaf_hash(1, A, 2) == keccak(enc)


# Leaves and proofs of the 200/300/250 balance map as produced by the ethers
# tooling (solidityKeccak256 leaves, sorted-pair parents).
ETHERS_LEAF_0 = "0xd31de46890d4a77baeebddbd77bf73b5c626397b73ee8c69b51efe4c9a5a72fa"
ETHERS_LEAF_1 = "0xceaacce7533111e902cc548e961d77b23a4d8cd073c6b68ccf55c62bd47fc36b"
ETHERS_LEAF_2 = "0xbfeb956a3b705056020a3b64c540bff700c0f6c96c55c0a5fcab57124cb36f7b"
ETHERS_PAIR_1_2 = "0x2a411ed78501edb696adca9e41e78d8256b61cfac45612fa0434d7cf87d916c6"


def test_parent_hash_matches_ethers_vector():
    l1, l2 = bytes.fromhex(ETHERS_LEAF_1[2:]), bytes.fromhex(ETHERS_LEAF_2[2:])
    assert "0x" + combined_hash(l1, l2).hex() == ETHERS_PAIR_1_2
    assert "0x" + combined_hash(l2, l1).hex() == ETHERS_PAIR_1_2


def test_three_leaf_proofs_match_ethers_artifact():
    leaves = [bytes.fromhex(h[2:]) for h in (ETHERS_LEAF_0, ETHERS_LEAF_1, ETHERS_LEAF_2)]
    tree = MerkleTree.from_leaves(leaves)
    proofs = ["0x" + p.hex() for p in tree.inclusion_proof(leaves[0])]
    assert proofs == [ETHERS_PAIR_1_2]
    assert ["0x" + p.hex() for p in tree.inclusion_proof(leaves[1])] == [ETHERS_LEAF_2, ETHERS_LEAF_0]
    assert ["0x" + p.hex() for p in tree.inclusion_proof(leaves[2])] == [ETHERS_LEAF_1, ETHERS_LEAF_0]
    for leaf in leaves:
        assert verify_inclusion(leaf, tree.inclusion_proof(leaf), tree.root)


def test_leaf_encoding_accepts_any_address_case():
    lower = "0xabcdefabcdefabcdefabcdefabcdefabcdefabcd"
    assert encode_leaf(0, lower, 5)[32:52] == bytes.fromhex(lower[2:])


def test_leaf_encoding_rejects_out_of_range():
    with pytest.raises(ValueError):
        encode_leaf(-1, A, 1)
    with pytest.raises(ValueError):
        encode_leaf(0, A, 2**256)
    with pytest.raises(ValueError):
        encode_leaf(0, "0x1234", 1)


def test_combined_hash_is_order_independent():
    x, y = keccak(b"x"), keccak(b"y")
    assert combined_hash(x, y) == combined_hash(y, x) == keccak(min(x, y) + max(x, y))
    assert combined_hash(x, None) == x
    assert combined_hash(None, y) == y


def test_merkle_basic():
    leaves = [keccak(f"leaf-{i}".encode()) for i in range(5)]
    tree = MerkleTree.from_leaves(leaves)
    assert tree.root
    proof = tree.inclusion_proof(leaves[2])
    assert verify_inclusion(leaves[2], proof, tree.root)


def test_merkle_empty_tree():
    with pytest.raises(ValueError):
        MerkleTree.from_leaves([])


def test_single_leaf_root_is_leaf():
    tree = BalanceTree([Entry(0, A, 7)])
    assert tree.root == leaf_hash(0, A, 7)
    assert tree.proof_for(0) == []
    assert verify_proof(0, A, 7, [], tree.root)


def test_two_leaf_root():
    l0, l1 = leaf_hash(0, A, 100), leaf_hash(1, B, 101)
    tree = BalanceTree([Entry(0, A, 100), Entry(1, B, 101)])
    assert tree.root == keccak(min(l0, l1) + max(l0, l1))
    assert tree.proof_for(0) == [l1]
    assert tree.proof_for(1) == [l0]


def test_odd_node_is_promoted():
    entries = [Entry(0, A, 200), Entry(1, B, 300), Entry(2, C, 250)]
    leaves = sorted(e.leaf for e in entries)
    expected = combined_hash(combined_hash(leaves[0], leaves[1]), leaves[2])
    tree = BalanceTree(entries)
    assert tree.root == expected
    lone = next(e for e in entries if e.leaf == leaves[2])
    assert tree.proof_for(lone.index) == [combined_hash(leaves[0], leaves[1])]
    paired = next(e for e in entries if e.leaf == leaves[0])
    assert tree.proof_for(paired.index) == [leaves[1], leaves[2]]


def test_every_entry_verifies():
    entries = [Entry(i, [A, B, C][i % 3], i * 7 + 1) for i in range(37)]
    tree = BalanceTree(entries)
    for e in entries:
        assert verify_proof(e.index, e.account, e.amount, tree.proof_for(e.index), tree.root)
        assert len(tree.proof_for(e.index)) <= 6


def test_root_is_permutation_independent():
    entries = [Entry(0, A, 1), Entry(1, B, 2), Entry(2, C, 3), Entry(3, A, 4)]
    roots = {build_root(p) for p in itertools.permutations(entries)}
    assert len(roots) == 1


def test_tampered_entries_do_not_verify():
    entries = [Entry(0, A, 100), Entry(1, B, 101), Entry(2, C, 102)]
    tree = BalanceTree(entries)
    proof = tree.proof_for(0)
    assert verify_proof(0, A, 100, proof, tree.root)
    assert not verify_proof(0, A, 101, proof, tree.root)
    assert not verify_proof(1, A, 100, proof, tree.root)
    assert not verify_proof(0, B, 100, proof, tree.root)
    # another leaf's proof does not carry over
    assert not verify_proof(1, B, 101, proof, tree.root)


def test_mutated_proof_rejected():
    tree = BalanceTree([Entry(i, A, 10) for i in range(8)])
    proof = tree.proof_for(3)
    bad = [bytes([proof[0][0] ^ 1]) + proof[0][1:]] + proof[1:]
    assert not verify_proof(3, A, 10, bad, tree.root)
    assert not verify_proof(3, A, 10, proof[:-1], tree.root)


def test_duplicate_index_rejected():
    with pytest.raises(DuplicateIndex):
        BalanceTree([Entry(0, A, 1), Entry(0, B, 2)])


def test_unknown_index():
    tree = BalanceTree([Entry(0, A, 1), Entry(1, B, 2)])
    with pytest.raises(UnknownIndex):
        tree.proof_for(2)
    with pytest.raises(KeyError):
        tree.proof_for(5)
    with pytest.raises(UnknownIndex):
        tree.get_proof(0, A, 2)


def test_get_proof_is_hex():
    tree = BalanceTree.from_balances([(A, 100), (B, 101)])
    proof = tree.get_proof(0, A, 100)
    assert proof == ["0x" + leaf_hash(1, B, 101).hex()]
    assert tree.hex_root == "0x" + tree.root.hex()
