from typing import List

from pydantic import BaseModel, Field, field_validator

from .actions import ProposedAction
from .hashing import transaction_hash
from .identity import from_hex


def _hex_bytes(value: str) -> bytes:
    text = value[2:] if value.startswith(("0x", "0X")) else value
    return bytes.fromhex(text)


class ProposedActionModel(BaseModel):
    destination: str
    value: int = Field(default=0, ge=0)
    payload: str = "0x"

    @field_validator("destination")
    @classmethod
    def _check_destination(cls, v: str) -> str:
        from_hex(v)
        return v

    @field_validator("payload")
    @classmethod
    def _check_payload(cls, v: str) -> str:
        try:
            _hex_bytes(v)
        except ValueError:
            raise ValueError("payload must be hex")
        return v

    def to_action(self) -> ProposedAction:
        return ProposedAction(
            destination=from_hex(self.destination),
            value=self.value,
            payload=_hex_bytes(self.payload)
        )


class TransactionRequest(BaseModel):
    chain_id: int = Field(ge=0)
    wallet: str
    nonce: int = Field(ge=0)
    action: ProposedActionModel

    @field_validator("wallet")
    @classmethod
    def _check_wallet(cls, v: str) -> str:
        from_hex(v)
        return v

    def digest(self) -> bytes:
        action = self.action.to_action()
        return transaction_hash(
            self.chain_id,
            from_hex(self.wallet),
            self.nonce,
            action.destination,
            action.value,
            action.payload
        )


class SignatureBundle(BaseModel):
    digest: str
    signatures: List[str] = Field(default_factory=list)

    def digest_bytes(self) -> bytes:
        return _hex_bytes(self.digest)

    def signature_bytes(self) -> List[bytes]:
        return [_hex_bytes(s) for s in self.signatures]
