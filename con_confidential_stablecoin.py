"""
CONFIDENTIAL STABLECOIN (cUSD)

Balances and the total supply are ciphertext handles held by an FHE
coprocessor contract. The ledger never sees a plaintext balance:
  - transfers move select(balance >= amount, amount, 0)
  - burns remove select(balance >= amount, amount, 0) from balance and supply
so an insufficient balance turns the operation into a silent no-op instead
of a revert.

Only allowlisted addresses may send or receive. Every caller supplied
ciphertext must come with an input proof bound to (this contract, sender).
"""

# -----------------------------------------------------------------------------
# Parameters & Helpers
# -----------------------------------------------------------------------------

UINT64_MAX = 2**64 - 1

DEFAULT_FAUCET_AMOUNT = 1000 * 10**6  # 1000 cUSD at 6 decimals
DEFAULT_FAUCET_COOLDOWN = 86400  # 24h

ZERO_ADDRESSES = ['', '0', '0x' + '0' * 40, '0' * 64]

def fhe():
    return importlib.import_module(metadata['fhe_contract'])

def is_address(address):
    return isinstance(address, str) and len(address) > 0

def require_address(address):
    assert is_address(address), 'InvalidArgument: malformed address'

def require_uint64(value, label: str):
    ok = isinstance(value, int) and not isinstance(value, bool)
    assert ok and 0 <= value <= UINT64_MAX, 'InvalidArgument: ' + label + ' must be a uint64'

def require_owner(action: str):
    assert ctx.caller == metadata['owner'], 'Unauthorized: only owner can ' + action

EPOCH = datetime.datetime(1970, 1, 1)

def block_seconds():
    # Whole seconds of the block time since the unix epoch
    return int((now - EPOCH).seconds)

# -----------------------------------------------------------------------------
# State
# -----------------------------------------------------------------------------

# address -> {'balance': handle, 'initialized': bool, 'updates': int}
accounts = Hash()

# address -> bool
allowlist = Hash(default_value=False)

# address -> unix seconds of the last successful faucet claim
faucet_claims = Hash()

# name / symbol / decimals / owner / fhe_contract / faucet settings
metadata = Hash()

# encrypted total supply handle
supply = Variable()

# counter for events
next_tx_id = Variable()

# Events
TransferEvent = LogEvent('Transfer', {
    'from': {'type': str, 'idx': True},
    'to': {'type': str, 'idx': True},
    'tx_id': {'type': int, 'idx': True}
})

MintEvent = LogEvent('Mint', {
    'to': {'type': str, 'idx': True},
    'amount': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

BurnEvent = LogEvent('Burn', {
    'from': {'type': str, 'idx': True},
    'amount': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

FaucetClaimEvent = LogEvent('FaucetClaim', {
    'account': {'type': str, 'idx': True},
    'amount': {'type': int},
    'tx_id': {'type': int, 'idx': True}
})

AllowlistEvent = LogEvent('AllowlistUpdate', {
    'account': {'type': str, 'idx': True},
    'status': {'type': str}
})

OwnershipEvent = LogEvent('OwnershipTransferred', {
    'previous_owner': {'type': str, 'idx': True},
    'new_owner': {'type': str, 'idx': True}
})

FaucetSettingsEvent = LogEvent('FaucetSettings', {
    'amount': {'type': int},
    'cooldown': {'type': int}
})

# -----------------------------------------------------------------------------
# Construction
# -----------------------------------------------------------------------------

@construct
def seed(fhe_contract: str):
    metadata['name'] = "Confidential USD"
    metadata['symbol'] = "cUSD"
    metadata['decimals'] = 6
    metadata['owner'] = ctx.caller
    metadata['fhe_contract'] = fhe_contract

    metadata['faucet_amount'] = DEFAULT_FAUCET_AMOUNT
    metadata['faucet_cooldown'] = DEFAULT_FAUCET_COOLDOWN

    next_tx_id.set(1)

# -----------------------------------------------------------------------------
# Views
# -----------------------------------------------------------------------------

@export
def get_metadata():
    return {
        'name': metadata['name'],
        'symbol': metadata['symbol'],
        'decimals': metadata['decimals'],
        'owner': metadata['owner'],
        'fhe_contract': metadata['fhe_contract']
    }

@export
def change_metadata(key: str, value: str):
    require_owner('set metadata')
    assert key in ['name', 'symbol'], 'InvalidArgument: metadata key is not editable'
    metadata[key] = value

@export
def get_owner():
    return metadata['owner']

@export
def is_owner(address: str):
    return address == metadata['owner']

@export
def is_allowed(address: str):
    return bool(allowlist[address])

@export
def balance_of(address: str):
    data = accounts[address]
    if data is None:
        return fhe().encrypt_zero()
    return data['balance']

@export
def has_balance(address: str):
    data = accounts[address]
    return data is not None and data['initialized']

@export
def get_account(address: str):
    data = accounts[address]
    if data is None:
        return {
            'exists': False,
            'balance': fhe().encrypt_zero(),
            'updates': 0
        }
    return {
        'exists': True,
        'balance': data['balance'],
        'updates': data['updates']
    }

@export
def total_supply():
    return supply_handle()

# -----------------------------------------------------------------------------
# Account ledger internals
# -----------------------------------------------------------------------------

def next_tx():
    tid = next_tx_id.get()
    next_tx_id.set(tid + 1)
    return tid

def supply_handle():
    handle = supply.get()
    if handle is None:
        return fhe().encrypt_zero()
    return handle

def set_supply(handle: str):
    supply.set(handle)
    fhe().allow(handle=handle, account=metadata['owner'])

def ensure_initialized(address: str):
    if accounts[address] is not None:
        return
    accounts[address] = {
        'balance': fhe().encrypt_zero(),
        'initialized': True,
        'updates': 0
    }

def set_balance(address: str, handle: str):
    data = accounts[address]
    accounts[address] = {
        'balance': handle,
        'initialized': True,
        'updates': data['updates'] + 1
    }
    fhe().allow(handle=handle, account=address)

def credit(to: str, amount: int):
    # Public plaintext credit used by mint and the faucet
    ensure_initialized(to)
    f = fhe()
    encrypted = f.encrypt(value=amount)
    set_balance(to, f.add(a=accounts[to]['balance'], b=encrypted))
    set_supply(f.add(a=supply_handle(), b=encrypted))

# -----------------------------------------------------------------------------
# Access control
# -----------------------------------------------------------------------------

@export
def set_allowed(target: str, allowed: bool):
    require_owner('update allowlist')
    require_address(target)

    allowlist[target] = allowed
    AllowlistEvent({
        'account': target,
        'status': 'allowed' if allowed else 'revoked'
    })

@export
def batch_set_allowed(targets: list, allowed: bool):
    require_owner('update allowlist')
    assert isinstance(targets, list), 'InvalidArgument: targets must be a list'

    # Validate everything before the first write
    for target in targets:
        require_address(target)

    for target in targets:
        allowlist[target] = allowed
        AllowlistEvent({
            'account': target,
            'status': 'allowed' if allowed else 'revoked'
        })

@export
def transfer_ownership(new_owner: str):
    require_owner('transfer ownership')
    require_address(new_owner)
    assert new_owner not in ZERO_ADDRESSES, 'InvalidArgument: new owner is the zero address'

    previous = metadata['owner']
    metadata['owner'] = new_owner

    current = supply.get()
    if current is not None:
        fhe().allow(handle=current, account=new_owner)

    OwnershipEvent({
        'previous_owner': previous,
        'new_owner': new_owner
    })

# -----------------------------------------------------------------------------
# Mint / Burn (owner; plaintext amounts)
# -----------------------------------------------------------------------------

@export
def mint(to: str, amount: int):
    require_owner('mint')
    require_address(to)
    require_uint64(amount, 'amount')

    credit(to, amount)

    MintEvent({
        'to': to,
        'amount': amount,
        'tx_id': next_tx()
    })

@export
def burn(from_address: str, amount: int):
    require_owner('burn')
    require_address(from_address)
    require_uint64(amount, 'amount')

    f = fhe()

    # Burning never creates an account record
    data = accounts[from_address]
    balance = data['balance'] if data is not None else f.encrypt_zero()
    requested = f.encrypt(value=amount)
    sufficient = f.ge(a=balance, b=requested)

    # Computed once, removed from both the balance and the supply
    burned = f.select(condition=sufficient, if_true=requested, if_false=f.encrypt_zero())

    if data is not None:
        set_balance(from_address, f.sub(a=balance, b=burned))
    set_supply(f.sub(a=supply_handle(), b=burned))

    BurnEvent({
        'from': from_address,
        'amount': amount,
        'tx_id': next_tx()
    })

# -----------------------------------------------------------------------------
# Core: confidential transfer
# -----------------------------------------------------------------------------

@export
def transfer(to: str, encrypted_amount: str, input_proof: dict):
    sender = ctx.caller

    assert allowlist[sender], 'Unauthorized: sender is not allowlisted'
    assert allowlist[to], 'Unauthorized: recipient is not allowlisted'

    f = fhe()
    verified = f.verify_input(handle=encrypted_amount, proof=input_proof, contract=ctx.this, sender=sender)
    assert verified, 'InvalidProof: ciphertext is not bound to this ledger and sender'

    ensure_initialized(sender)
    ensure_initialized(to)

    sufficient = f.ge(a=accounts[sender]['balance'], b=encrypted_amount)
    moved = f.select(condition=sufficient, if_true=encrypted_amount, if_false=f.encrypt_zero())

    set_balance(sender, f.sub(a=accounts[sender]['balance'], b=moved))
    set_balance(to, f.add(a=accounts[to]['balance'], b=moved))

    TransferEvent({
        'from': sender,
        'to': to,
        'tx_id': next_tx()
    })
    return True

# -----------------------------------------------------------------------------
# Faucet
# -----------------------------------------------------------------------------

@export
def faucet_amount():
    return metadata['faucet_amount']

@export
def faucet_cooldown():
    return metadata['faucet_cooldown']

@export
def last_faucet_claim(address: str):
    last = faucet_claims[address]
    return last if last is not None else 0

@export
def time_until_next_claim(address: str):
    last = faucet_claims[address]
    if last is None:
        return 0
    remaining = last + metadata['faucet_cooldown'] - block_seconds()
    return remaining if remaining > 0 else 0

@export
def claim_faucet():
    caller = ctx.caller
    current = block_seconds()

    last = faucet_claims[caller]
    if last is not None:
        assert current >= last + metadata['faucet_cooldown'], 'CooldownActive: faucet cooldown has not elapsed'

    if not allowlist[caller]:
        allowlist[caller] = True
        AllowlistEvent({
            'account': caller,
            'status': 'allowed'
        })

    amount = metadata['faucet_amount']
    credit(caller, amount)
    faucet_claims[caller] = current

    FaucetClaimEvent({
        'account': caller,
        'amount': amount,
        'tx_id': next_tx()
    })

@export
def set_faucet_settings(amount: int, cooldown: int):
    require_owner('configure faucet')
    require_uint64(amount, 'amount')
    require_uint64(cooldown, 'cooldown')

    metadata['faucet_amount'] = amount
    metadata['faucet_cooldown'] = cooldown

    FaucetSettingsEvent({
        'amount': amount,
        'cooldown': cooldown
    })
