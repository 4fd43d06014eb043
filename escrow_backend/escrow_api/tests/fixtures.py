"""Builders for the JSON rendering of contract storage used across the tests."""

CONTRACT_ID = "C" + "A" * 55
TOKEN_CONTRACT_ID = "C" + "B" * 55
APPROVER = "GAPPROVER" + "A" * 41 + "XYZ123"
SERVICE_PROVIDER = "GPROVIDER" + "B" * 41 + "QRS456"
TX_HASH = "ab" * 32


def symbol(name):
    return {"symbol": name}


def entry(key, val):
    return {"key": symbol(key), "val": val}


def string(value):
    return {"string": value}


def address(value):
    return {"address": value}


def boolean(value):
    return {"bool": value}


def u32(value):
    return {"u32": value}


def i128(lo, hi=0):
    return {"i128": {"hi": hi, "lo": lo}}


def vec(*items):
    return {"vec": list(items)}


def map_of(*entries):
    return {"map": list(entries)}


def trustline(decimals=7, token=TOKEN_CONTRACT_ID):
    entries = [entry("address", address(token))]
    if decimals is not None:
        entries.append(entry("decimals", u32(decimals)))
    return map_of(*entries)


def single_release_escrow():
    return [
        entry("title", string("Website redesign")),
        entry("description", string("Landing page and dashboard")),
        entry("engagement_id", string("ENG-42")),
        entry("amount", i128(1_000_000_000)),
        entry("balance", i128(500_000_000)),
        entry("platform_fee", i128(250)),
        entry("trustline", trustline(decimals=7)),
        entry("roles", map_of(
            entry("approver", address(APPROVER)),
            entry("service_provider", address(SERVICE_PROVIDER)),
        )),
        entry("flags", map_of(
            entry("disputed", boolean(True)),
            entry("released", boolean(False)),
        )),
        entry("milestones", vec(
            map_of(
                entry("title", string("Design")),
                entry("description", string("Mockups")),
                entry("status", string("completed")),
                entry("approved_flag", boolean(True)),
            ),
            map_of(
                entry("description", string("Build")),
                entry("approved_flag", boolean(False)),
            ),
        )),
    ]


def multi_release_escrow():
    return [
        entry("title", string("Grant")),
        entry("description", string("Two phase grant")),
        entry("balance", i128(450_000_000)),
        entry("trustline", trustline(decimals=7)),
        entry("milestones", vec(
            map_of(
                entry("title", string("Phase 1")),
                entry("amount", i128(300_000_000)),
                entry("approved_flag", boolean(True)),
                entry("release_flag", boolean(True)),
                entry("approver", address(APPROVER)),
            ),
            map_of(
                entry("title", string("Phase 2")),
                entry("amount", i128(200_000_000)),
                entry("dispute_flag", boolean(True)),
            ),
        )),
    ]


def ledger_entries_result(escrow_entries, extra_storage=()):
    """getLedgerEntries result wrapping the given Escrow map entries in a contract instance."""
    storage = list(extra_storage) + [{"key": vec(symbol("Escrow")), "val": map_of(*escrow_entries)}]
    return {
        "entries": [{
            "key": "AAAABgAAAAE=",
            "dataJson": {
                "contract_data": {
                    "ext": "v0",
                    "durability": "persistent",
                    "key": "ledger_key_contract_instance",
                    "val": {"contract_instance": {"executable": {"wasm": "00"}, "storage": storage}},
                },
            },
            "lastModifiedLedgerSeq": 123,
        }],
        "latestLedger": 456,
    }
