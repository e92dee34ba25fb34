"""
Mint: issues, swaps and redeems blind-signed tokens.

Every state-changing operation runs inside one database transaction, so a
failed check leaves the ledger untouched and two concurrent requests spending
the same proof cannot both succeed. Calls to the settlement oracle happen
outside transactions: a melt first reserves its inputs as pending, then pays
out, then either finalizes or releases the reservation.
"""

from __future__ import annotations

import logging
import time
import uuid
from typing import Callable

from monexo.core.amount import checked_sum
from monexo.core.errors import (
    InvalidAmount,
    InvalidProof,
    InvalidQuote,
    InvalidUuid,
    KeysetInactive,
    KeysetNotFound,
    NotEnoughTokens,
    OutputsAlreadySigned,
    PrivateKeyNotFound,
    ProofAlreadyUsed,
    SettlementError,
    SwapAmountMismatch,
    SwapHasDuplicatePromises,
    UnitMismatch,
)
from monexo.core.models import (
    BlindedMessage,
    BlindedSignature,
    CurrencyUnit,
    DleqWire,
    MeltQuote,
    MeltQuoteState,
    MintQuote,
    MintQuoteState,
    Proof,
    ProofState,
)
from monexo.core.primitives import (
    KeysetInfo,
    KeysetKeys,
    KeysetsResponse,
    KeysResponse,
    MintInfoResponse,
    ProofStateEntry,
)
from monexo.crypto.dhke import generate_dleq, step2_sign, verify
from monexo.crypto.keyset import MintKeyset
from monexo.crypto.secp import decode_point, encode_point
from monexo.mint.config import MintConfig
from monexo.mint.database import SqliteDatabase
from monexo.mint.settlement import InMemorySettlementOracle, SettlementOracle

logger = logging.getLogger("monexo.mint")

MINT_VERSION = "monexo-mint/0.1.0"


def _parse_quote_id(quote_id: str) -> str:
    try:
        return str(uuid.UUID(quote_id))
    except (TypeError, ValueError) as e:
        raise InvalidUuid(f"Invalid quote id: {quote_id!r}") from e


class Mint:
    """
    The mint state machine.

    Usage:
        mint = Mint(MintConfig(private_key="..."))
        signatures = mint.swap(proofs, outputs)
    """

    def __init__(
        self,
        config: MintConfig,
        db: SqliteDatabase | None = None,
        oracle: SettlementOracle | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.config = config
        self.db = db or SqliteDatabase(config.db_path)
        self.oracle = oracle or InMemorySettlementOracle()
        self._clock = clock

        self.keysets: dict[str, MintKeyset] = {}
        for kc in config.keysets:
            keyset = MintKeyset.new(
                config.private_key,
                kc.derivation_path,
                unit=kc.unit.value,
                max_order=kc.max_order,
                active=kc.active,
                valid_from=kc.valid_from,
                valid_to=kc.valid_to,
            )
            self.keysets[keyset.id] = keyset
            self.db.add_keyset_info(keyset)
            logger.info(f"Loaded keyset {keyset.id} unit={keyset.unit} active={keyset.active}")

    def _now(self) -> int:
        return int(self._clock())

    # ------------------------------------------------------------------
    # Keysets
    # ------------------------------------------------------------------

    def get_keyset(self, keyset_id: str) -> MintKeyset:
        keyset = self.keysets.get(keyset_id)
        if keyset is None:
            raise KeysetNotFound(f"Keyset {keyset_id} not found")
        return keyset

    def active_keyset(self, unit: CurrencyUnit | str = CurrencyUnit.USD) -> MintKeyset:
        unit = unit.value if isinstance(unit, CurrencyUnit) else unit
        for keyset in self.keysets.values():
            if keyset.active and keyset.unit == unit:
                return keyset
        raise KeysetNotFound(f"No active keyset for unit {unit}")

    def get_keys(self, keyset_id: str | None = None) -> KeysResponse:
        """Public keys of one keyset, or of every active keyset."""
        if keyset_id is not None:
            selected = [self.get_keyset(keyset_id)]
        else:
            selected = [k for k in self.keysets.values() if k.active]
        return KeysResponse(
            keysets=[KeysetKeys(id=k.id, unit=k.unit, keys=k.public_keys_hex()) for k in selected]
        )

    def get_keysets(self) -> KeysetsResponse:
        return KeysetsResponse(
            keysets=[KeysetInfo(id=k.id, unit=k.unit, active=k.active) for k in self.keysets.values()]
        )

    def get_info(self) -> MintInfoResponse:
        info = self.config.info
        contact = [["email", info.contact_email]] if info.contact_email else []
        return MintInfoResponse(
            name=info.name,
            version=MINT_VERSION if info.version else None,
            description=info.description,
            description_long=info.description_long,
            contact=contact,
            motd=info.motd,
            nuts={
                "4": {"methods": [{"method": "onchain", "unit": k.unit} for k in self.keysets.values() if k.active]},
                "5": {"methods": [{"method": "onchain", "unit": k.unit} for k in self.keysets.values() if k.active]},
                "7": {"supported": True},
                "9": {"supported": True},
                "12": {"supported": True},
            },
        )

    # ------------------------------------------------------------------
    # Signing and verification
    # ------------------------------------------------------------------

    def create_blinded_signatures(self, outputs: list[BlindedMessage]) -> list[BlindedSignature]:
        """
        Sign outputs with the keyset and denomination they name.

        Raises:
            KeysetNotFound / KeysetInactive: Unknown or retired keyset.
            PrivateKeyNotFound: The keyset has no key for the amount.
            InvalidProof: B_ is not a curve point.
        """
        signatures = []
        for output in outputs:
            keyset = self.get_keyset(output.id)
            if not keyset.active:
                raise KeysetInactive(f"Keyset {keyset.id} is inactive")
            k = keyset.private_key_for(output.amount)
            if k is None:
                raise PrivateKeyNotFound(f"No key for amount {output.amount} in keyset {keyset.id}")
            try:
                B_ = decode_point(output.B_)
            except ValueError as e:
                raise InvalidProof(f"Invalid blinded message: {e}") from e
            C_ = step2_sign(B_, k)
            e, s = generate_dleq(B_, C_, k).to_hex()
            signatures.append(
                BlindedSignature(amount=output.amount, id=keyset.id, C_=encode_point(C_), dleq=DleqWire(e=e, s=s))
            )
        return signatures

    def verify_proofs(self, proofs: list[Proof]) -> None:
        """
        Check that every proof carries a valid signature of this mint.

        Raises:
            KeysetNotFound: Unknown keyset id.
            InvalidProof: Bad point or signature mismatch.
        """
        for proof in proofs:
            keyset = self.get_keyset(proof.id)
            k = keyset.private_key_for(proof.amount)
            if k is None:
                raise InvalidProof(f"No key for amount {proof.amount} in keyset {keyset.id}")
            try:
                C = decode_point(proof.C)
            except ValueError as e:
                raise InvalidProof(f"Invalid proof signature point: {e}") from e
            if not verify(k, C, proof.secret.encode("utf-8")):
                raise InvalidProof("Proof signature does not verify")

    def check_used_proofs(self, proofs: list[Proof]) -> None:
        """
        Reject proofs that repeat a secret, are already spent, or are
        reserved by an in-flight melt.

        Raises:
            ProofAlreadyUsed
        """
        secrets = [p.secret for p in proofs]
        if len(set(secrets)) != len(secrets):
            raise ProofAlreadyUsed("Duplicate proofs in request")
        if self.db.get_used_secrets(secrets):
            raise ProofAlreadyUsed()
        if self.db.get_pending_secrets(secrets):
            raise ProofAlreadyUsed("Proof is pending")

    def check_outputs(self, outputs: list[BlindedMessage]) -> None:
        b_s = [o.B_ for o in outputs]
        if len(set(b_s)) != len(b_s):
            raise SwapHasDuplicatePromises()
        if self.db.get_signed_outputs(b_s):
            raise OutputsAlreadySigned()

    def _check_inputs(self, inputs: list[Proof]) -> None:
        self.check_used_proofs(inputs)
        self.verify_proofs(inputs)

    def _unit_of(self, items: list, what: str) -> str:
        """The one unit shared by every keyset ``items`` name."""
        units = {self.get_keyset(item.id).unit for item in items}
        if len(units) != 1:
            raise UnitMismatch(f"{what} span units {sorted(units)}")
        return units.pop()

    # ------------------------------------------------------------------
    # Swap / exchange
    # ------------------------------------------------------------------

    def swap(self, inputs: list[Proof], outputs: list[BlindedMessage]) -> list[BlindedSignature]:
        """
        Exchange proofs 1:1 for new blind signatures of the same unit.

        Raises:
            ProofAlreadyUsed, InvalidProof, SwapHasDuplicatePromises,
            OutputsAlreadySigned, SwapAmountMismatch, UnitMismatch,
            KeysetNotFound, KeysetInactive, PrivateKeyNotFound
        """
        if not inputs and not outputs:
            return []
        with self.db.transaction():
            self._check_inputs(inputs)
            self.check_outputs(outputs)
            self._unit_of(inputs + outputs, "Swap inputs and outputs")
            signatures = self.create_blinded_signatures(outputs)

            amount_in = checked_sum(p.amount for p in inputs)
            amount_out = checked_sum(o.amount for o in outputs)
            if amount_in != amount_out:
                raise SwapAmountMismatch(f"Swap amount mismatch: {amount_in} != {amount_out}")

            self.db.add_used_proofs(inputs)
            self.db.add_promises(outputs, signatures)
        logger.info(f"Swap: {len(inputs)} inputs -> {len(outputs)} outputs, amount={amount_in}")
        return signatures

    def exchange(
        self, amount: int, inputs: list[Proof], outputs: list[BlindedMessage]
    ) -> list[BlindedSignature]:
        """
        Spend ``inputs`` worth exactly ``amount`` for outputs that may use
        another unit's keyset.

        No conversion rate is configured, so same-unit outputs must total
        ``amount`` and other-unit outputs may total at most ``amount``.

        Raises:
            InvalidAmount: No inputs or no outputs.
            UnitMismatch: Inputs, or outputs, span more than one unit.
            SwapAmountMismatch: Inputs or outputs do not match ``amount``.
            plus everything ``swap`` raises.
        """
        if not inputs or not outputs:
            raise InvalidAmount("Exchange needs inputs and outputs")
        with self.db.transaction():
            self._check_inputs(inputs)
            self.check_outputs(outputs)
            unit_in = self._unit_of(inputs, "Exchange inputs")
            unit_out = self._unit_of(outputs, "Exchange outputs")

            amount_in = checked_sum(p.amount for p in inputs)
            if amount_in != amount:
                raise SwapAmountMismatch(f"Exchange amount mismatch: {amount_in} != {amount}")
            amount_out = checked_sum(o.amount for o in outputs)
            if unit_out == unit_in and amount_out != amount:
                raise SwapAmountMismatch(f"Exchange outputs {amount_out} != {amount} {unit_in}")
            if unit_out != unit_in and amount_out > amount:
                raise SwapAmountMismatch(f"Exchange outputs {amount_out} {unit_out} exceed {amount} {unit_in}")

            signatures = self.create_blinded_signatures(outputs)

            self.db.add_used_proofs(inputs)
            self.db.add_promises(outputs, signatures)
        logger.info(f"Exchange: {len(inputs)} inputs worth {amount} -> {len(outputs)} outputs")
        return signatures

    # ------------------------------------------------------------------
    # Mint (incoming payment -> tokens)
    # ------------------------------------------------------------------

    def _check_quote_amount(self, amount: int) -> None:
        onchain = self.config.onchain
        if amount < onchain.min_amount:
            raise InvalidAmount(f"Amount {amount} below minimum {onchain.min_amount}")
        if amount > onchain.max_amount:
            raise InvalidAmount(f"Amount {amount} above maximum {onchain.max_amount}")

    def create_mint_quote(self, amount: int) -> MintQuote:
        """
        Open a quote the payer settles with ``amount + fee`` under ``reference``.

        Raises:
            InvalidAmount: Outside the configured limits.
        """
        self._check_quote_amount(amount)
        quote = MintQuote(
            quote_id=str(uuid.uuid4()),
            reference=self.oracle.new_reference(),
            amount=amount,
            fee=self.config.onchain.fee_for(amount),
            expiry=self._now() + self.config.onchain.quote_expiry_seconds,
            state=MintQuoteState.UNPAID,
        )
        self.db.add_mint_quote(quote)
        logger.info(f"Mint quote {quote.quote_id} created: amount={amount} fee={quote.fee}")
        return quote

    def get_mint_quote(self, quote_id: str) -> MintQuote:
        """
        Return the quote, first asking the settlement oracle whether an
        unpaid quote has been paid.

        Raises:
            InvalidUuid, InvalidQuote
        """
        quote_id = _parse_quote_id(quote_id)
        quote = self.db.get_mint_quote(quote_id)
        if quote is None:
            raise InvalidQuote(f"Mint quote {quote_id} not found")
        if quote.state not in (MintQuoteState.UNPAID, MintQuoteState.PENDING):
            return quote

        if not self.oracle.confirm_incoming_payment(quote.reference, quote.amount + quote.fee):
            return quote

        with self.db.transaction():
            current = self.db.get_mint_quote(quote_id)
            if current.state in (MintQuoteState.UNPAID, MintQuoteState.PENDING):
                self.db.update_mint_quote_state(quote_id, MintQuoteState.PAID)
                current.state = MintQuoteState.PAID
                logger.info(f"Mint quote {quote_id} paid")
        return current

    def mint_tokens(self, quote_id: str, outputs: list[BlindedMessage]) -> list[BlindedSignature]:
        """
        Issue signatures for a paid quote. A quote issues at most once.

        Raises:
            InvalidUuid, InvalidQuote, InvalidAmount, SwapHasDuplicatePromises,
            OutputsAlreadySigned, KeysetNotFound, KeysetInactive, PrivateKeyNotFound
        """
        quote_id = _parse_quote_id(quote_id)
        self.get_mint_quote(quote_id)

        with self.db.transaction():
            quote = self.db.get_mint_quote(quote_id)
            if quote.state == MintQuoteState.ISSUED:
                raise InvalidQuote(f"Mint quote {quote_id} already issued")
            if quote.state != MintQuoteState.PAID:
                if quote.expiry < self._now():
                    raise InvalidQuote(f"Mint quote {quote_id} expired")
                raise InvalidQuote(f"Mint quote {quote_id} not paid")

            total = checked_sum(o.amount for o in outputs)
            if total != quote.amount:
                raise InvalidAmount(f"Outputs total {total} != quote amount {quote.amount}")

            self.check_outputs(outputs)
            signatures = self.create_blinded_signatures(outputs)
            self.db.add_promises(outputs, signatures)
            self.db.update_mint_quote_state(quote_id, MintQuoteState.ISSUED)
        logger.info(f"Mint quote {quote_id} issued: {len(signatures)} signatures, amount={total}")
        return signatures

    # ------------------------------------------------------------------
    # Melt (tokens -> outgoing payout)
    # ------------------------------------------------------------------

    def create_melt_quote(self, amount: int, address: str) -> list[MeltQuote]:
        """
        Quote a payout of ``amount - fee`` to ``address`` for tokens worth ``amount``.

        Raises:
            InvalidAmount: Outside the configured limits.
        """
        self._check_quote_amount(amount)
        fee = self.config.onchain.fee_for(amount)
        quote = MeltQuote(
            quote_id=str(uuid.uuid4()),
            amount=amount,
            fee=fee,
            address=address,
            reference=self.oracle.new_reference(),
            expiry=self._now() + self.config.onchain.quote_expiry_seconds,
            state=MeltQuoteState.UNPAID,
            description=f"Pay {amount - fee} to {address}",
        )
        self.db.add_melt_quote(quote)
        logger.info(f"Melt quote {quote.quote_id} created: amount={amount} fee={fee}")
        return [quote]

    def get_melt_quote(self, quote_id: str) -> MeltQuote:
        quote_id = _parse_quote_id(quote_id)
        quote = self.db.get_melt_quote(quote_id)
        if quote is None:
            raise InvalidQuote(f"Melt quote {quote_id} not found")
        return quote

    def melt(self, quote_id: str, inputs: list[Proof]) -> MeltQuote:
        """
        Redeem ``inputs`` against a melt quote.

        The inputs are reserved before the payout and become spent only
        once it succeeds. If the payout fails they are released, the quote
        returns to UNPAID and SettlementError is raised.

        Raises:
            InvalidUuid, InvalidQuote, NotEnoughTokens, ProofAlreadyUsed,
            InvalidProof, SettlementError
        """
        quote_id = _parse_quote_id(quote_id)

        with self.db.transaction():
            quote = self.db.get_melt_quote(quote_id)
            if quote is None:
                raise InvalidQuote(f"Melt quote {quote_id} not found")
            if quote.state != MeltQuoteState.UNPAID:
                raise InvalidQuote(f"Melt quote {quote_id} is {quote.state.value}")
            if quote.expiry < self._now():
                raise InvalidQuote(f"Melt quote {quote_id} expired")

            self._check_inputs(inputs)
            if inputs:
                self._unit_of(inputs, "Melt inputs")
            total = checked_sum(p.amount for p in inputs)
            if total < quote.amount:
                raise NotEnoughTokens(f"Inputs total {total} < quote amount {quote.amount}")

            self.db.add_pending_proofs(inputs, quote_id)
            self.db.update_melt_quote(quote_id, MeltQuoteState.PENDING)

        try:
            txid = self.oracle.execute_payout(quote.address, quote.amount - quote.fee, quote.reference)
        except Exception as e:
            with self.db.transaction():
                self.db.delete_pending_proofs(quote_id)
                self.db.update_melt_quote(quote_id, MeltQuoteState.UNPAID)
            logger.error(f"Melt quote {quote_id} payout failed, inputs released: {e}")
            if isinstance(e, SettlementError):
                raise
            raise SettlementError(f"Payout failed: {e}") from e

        with self.db.transaction():
            pending = self.db.get_pending_proofs(quote_id)
            self.db.delete_pending_proofs(quote_id)
            self.db.add_used_proofs(pending)
            self.db.update_melt_quote(quote_id, MeltQuoteState.PAID, txid=txid)
        logger.info(f"Melt quote {quote_id} paid: txid={txid}")

        quote.state = MeltQuoteState.PAID
        quote.txid = txid
        return quote

    # ------------------------------------------------------------------
    # State and recovery
    # ------------------------------------------------------------------

    def check_state(self, ys: list[str]) -> list[ProofStateEntry]:
        """UNSPENT / PENDING / SPENT for each Y = hash_to_curve(secret)."""
        spent = self.db.get_used_ys(ys)
        pending = self.db.get_pending_ys(ys)
        states = []
        for y in ys:
            if y in spent:
                state = ProofState.SPENT
            elif y in pending:
                state = ProofState.PENDING
            else:
                state = ProofState.UNSPENT
            states.append(ProofStateEntry(Y=y, state=state))
        return states

    def restore(
        self, outputs: list[BlindedMessage]
    ) -> tuple[list[BlindedMessage], list[BlindedSignature]]:
        """Return the stored signature for every output the mint has signed before."""
        promises = self.db.get_promises([o.B_ for o in outputs])
        found_outputs, signatures = [], []
        for output in outputs:
            sig = promises.get(output.B_)
            if sig is not None:
                found_outputs.append(output)
                signatures.append(sig)
        return found_outputs, signatures
