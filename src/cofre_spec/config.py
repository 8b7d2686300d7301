"""Cofre escrow spec configuration constants.

Keep this file aligned with the on-ledger program constants and the runtime
parameters the program depends on (rent, program ids, derivation limits).
"""

# Program ids (32-byte identities)
SYSTEM_PROGRAM_ID = bytes(32)
TOKEN_PROGRAM_ID = bytes.fromhex(
    "06ddf6e1d765a193d9cbe146ceeb79ac1cb485ed5f5b37913a8cf5857eff00a9"
)
ASSOCIATED_TOKEN_PROGRAM_ID = bytes.fromhex(
    "8c97258f4e2489f1bb3d1029148e0d830b5a1399daff1084048e7bd8dbe9f859"
)
COFRE_PROGRAM_ID = bytes.fromhex(
    "5a1e6c0f3b9d4e27a8c1f06b2d93e74c8b0a5f1d6e2c94b7a3d08f15c6e2b9a4"
)

PUBKEY_BYTES = 32
U64_MAX = (1 << 64) - 1

# Units
NATIVE_DECIMALS = 9
LAMPORTS_PER_SOL = 10**NATIVE_DECIMALS

# Rent (storage allowance)
ACCOUNT_STORAGE_OVERHEAD = 128
LAMPORTS_PER_BYTE_YEAR = 3480
EXEMPTION_THRESHOLD_YEARS = 2

# Account sizes
MINT_ACCOUNT_SPACE = 82
TOKEN_ACCOUNT_SPACE = 165
DISCRIMINATOR_SIZE = 8
MAX_TRADE_PUBKEYS = 4
# discriminator | maker | maker_amount | taker_amount | trade tag + largest variant | vault | bump
ESCROW_STATE_SPACE = (
    DISCRIMINATOR_SIZE
    + PUBKEY_BYTES
    + 8
    + 8
    + 1
    + MAX_TRADE_PUBKEYS * PUBKEY_BYTES
    + PUBKEY_BYTES
    + 1
)

# Program-derived addresses
PDA_MARKER = b"ProgramDerivedAddress"
MAX_SEEDS = 16
MAX_SEED_LEN = 32
MAX_BUMP_SEED = 255

# Program log lines
PROGRAM_LOG_PREFIX = "Program log: "
