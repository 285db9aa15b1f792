"""
PLAINTEXT FHE COPROCESSOR

Reference backend for the encrypted uint64 algebra used by the confidential
ledger. Ciphertexts are referred to by opaque handles; this backend keeps the
plaintext behind each handle in contract state so the ledger logic can be
exercised without a real homomorphic scheme.

Operation set (same surface a production coprocessor bridge must export):
  encrypt_zero, encrypt, add, sub, ge, select, verify_input, allow, can_decrypt

Every handle carries an access list. A caller may only compute on handles it
was granted, and results are granted to the caller that produced them.
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

UINT64_MOD = 2**64

EUINT64 = 'euint64'
EBOOL = 'ebool'

def domain_hash(*parts):
    s = "|".join(str(x) for x in parts)
    return hashlib.sha3("FHEPLAIN:v1|" + s)

ZERO_HANDLE = domain_hash('zero')

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# handle -> {'type': str, 'value': int}
values = Hash()

# (handle, account) -> bool
acl = Hash(default_value=False)

# handle -> bool (anyone may use / decrypt)
public = Hash(default_value=False)

next_handle_id = Variable()

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed():
    values[ZERO_HANDLE] = {'type': EUINT64, 'value': 0}
    public[ZERO_HANDLE] = True
    next_handle_id.set(1)

# -----------------------------------------------------------------------------
# Internals
# -----------------------------------------------------------------------------

def new_handle(kind: str, value: int):
    hid = next_handle_id.get()
    next_handle_id.set(hid + 1)

    handle = domain_hash('handle', ctx.caller, hid)
    values[handle] = {'type': kind, 'value': value}
    acl[handle, ctx.caller] = True
    return handle

def usable(handle: str, account: str):
    return public[handle] or acl[handle, account]

def load(handle: str, kind: str):
    entry = values[handle]
    assert entry is not None, 'Unknown ciphertext handle'
    assert usable(handle, ctx.caller), 'Caller not allowed to use ciphertext'
    assert entry['type'] == kind, 'Expected ' + kind + ' ciphertext'
    return entry['value']

def input_handle(contract: str, sender: str, value: int, salt: str):
    return domain_hash('input', contract, sender, value, salt)

def input_binding(handle: str, contract: str, sender: str):
    return domain_hash('proof', handle, contract, sender)

# -----------------------------------------------------------------------------
# Algebra
# -----------------------------------------------------------------------------

@export
def encrypt_zero():
    return ZERO_HANDLE

@export
def encrypt(value: int):
    assert isinstance(value, int) and 0 <= value < UINT64_MOD, 'Value out of uint64 range'
    return new_handle(EUINT64, value)

@export
def add(a: str, b: str):
    return new_handle(EUINT64, (load(a, EUINT64) + load(b, EUINT64)) % UINT64_MOD)

@export
def sub(a: str, b: str):
    return new_handle(EUINT64, (load(a, EUINT64) - load(b, EUINT64)) % UINT64_MOD)

@export
def ge(a: str, b: str):
    result = 1 if load(a, EUINT64) >= load(b, EUINT64) else 0
    return new_handle(EBOOL, result)

@export
def select(condition: str, if_true: str, if_false: str):
    flag = load(condition, EBOOL)

    true_entry = values[if_true]
    assert true_entry is not None, 'Unknown ciphertext handle'
    kind = true_entry['type']

    # Both branches are read regardless of the condition
    true_value = load(if_true, kind)
    false_value = load(if_false, kind)
    return new_handle(kind, true_value if flag == 1 else false_value)

# -----------------------------------------------------------------------------
# Input verification
# -----------------------------------------------------------------------------

@export
def verify_input(handle: str, proof: dict, contract: str, sender: str):
    if not isinstance(handle, str) or not isinstance(proof, dict):
        return False

    value = proof.get('value')
    salt = proof.get('salt')
    binding = proof.get('binding')

    if not isinstance(value, int) or isinstance(value, bool):
        return False
    if value < 0 or value >= UINT64_MOD:
        return False
    if not isinstance(salt, str) or not isinstance(binding, str):
        return False

    if handle != input_handle(contract, sender, value, salt):
        return False
    if binding != input_binding(handle, contract, sender):
        return False

    values[handle] = {'type': EUINT64, 'value': value}
    acl[handle, ctx.caller] = True
    return True

# -----------------------------------------------------------------------------
# Access control
# -----------------------------------------------------------------------------

@export
def allow(handle: str, account: str):
    assert values[handle] is not None, 'Unknown ciphertext handle'
    assert usable(handle, ctx.caller), 'Caller not allowed to share ciphertext'
    acl[handle, account] = True

@export
def can_decrypt(handle: str, account: str):
    if values[handle] is None:
        return False
    return bool(usable(handle, account))
