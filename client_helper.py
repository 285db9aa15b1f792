import hashlib
import secrets

# ---- Chain-constant parameters & helpers (mirror con_fhe_plain) --------------

UINT64_MAX = 2**64 - 1

ERROR_KINDS = ('Unauthorized', 'InvalidProof', 'InvalidArgument', 'CooldownActive')

def sha3_hex(s: str) -> str:
    # Matches Xian env semantics for non-hex input
    return hashlib.sha3_256(s.encode("utf-8")).hexdigest()

def domain_hash(*parts) -> str:
    return sha3_hex("FHEPLAIN:v1|" + "|".join(str(x) for x in parts))

def input_handle(ledger: str, sender: str, value: int, salt: str) -> str:
    return domain_hash("input", ledger, sender, value, salt)

def input_binding(handle: str, ledger: str, sender: str) -> str:
    return domain_hash("proof", handle, ledger, sender)

def random_salt() -> str:
    return secrets.token_hex(16)

def check_uint64(value) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise TypeError("amount must be an int")
    if value < 0 or value > UINT64_MAX:
        raise ValueError("amount out of uint64 range")
    return value

def error_kind(exc):
    """
    Map a failed ledger call back to its error kind, e.g. 'Unauthorized'.
    Returns None for errors that are not ledger rejections.
    """
    message = str(exc)
    for kind in ERROR_KINDS:
        if message.startswith(kind + ":"):
            return kind
    return None

# ---- Ciphertext producer -----------------------------------------------------

def build_encrypted_input(ledger: str, sender: str, amount: int, salt: str = None):
    """
    Encrypt `amount` for `sender` calling `ledger`.
    Returns {'encrypted_amount': handle, 'input_proof': proof}; the proof only
    verifies for that exact (ledger, sender) pair.
    """
    check_uint64(amount)
    if salt is None:
        salt = random_salt()

    handle = input_handle(ledger, sender, amount, salt)
    return {
        'encrypted_amount': handle,
        'input_proof': {
            'value': amount,
            'salt': salt,
            'binding': input_binding(handle, ledger, sender),
        },
    }

def build_transfer(ledger: str, sender: str, to: str, amount: int, salt: str = None):
    """
    Returns kwargs for contract.transfer():
        (to, encrypted_amount, input_proof)
    The call must be signed by `sender`.
    """
    payload = build_encrypted_input(ledger, sender, amount, salt=salt)
    payload['to'] = to
    return payload

# ---- Decryption requester ----------------------------------------------------

def decrypt_for(fhe_contract, handle: str, requester: str) -> int:
    """
    Out-of-band decryption against the plaintext coprocessor.
    Only requesters listed on the handle's access list get an answer.
    """
    if not fhe_contract.can_decrypt(handle=handle, account=requester):
        raise PermissionError(f"{requester} may not decrypt {handle}")
    return int(fhe_contract.values[handle]["value"])

# ---- Convenience: wallet-side helper (optional) ------------------------------

class ConfidentialWallet:
    """
    Optional local helper bundling an address with the ledger it talks to.
    Keeps the last decrypted balance so UIs can show it without re-requesting.
    """
    def __init__(self, address: str, ledger: str):
        self.address = address
        self.ledger = ledger
        self.last_balance = None

    def encrypt(self, amount: int, salt: str = None):
        return build_encrypted_input(self.ledger, self.address, amount, salt=salt)

    def transfer_args(self, to: str, amount: int, salt: str = None):
        return build_transfer(self.ledger, self.address, to, amount, salt=salt)

    def refresh_balance(self, ledger_contract, fhe_contract) -> int:
        handle = ledger_contract.balance_of(address=self.address)
        self.last_balance = decrypt_for(fhe_contract, handle, self.address)
        return self.last_balance
