"""
Wallet: holds proofs locally and runs the wallet side of swap, mint and melt.

Every blinded output uses a secret and blinding factor derived from the
wallet's mnemonic. The derivation counter of a keyset is advanced and
committed before the derived values leave the wallet. ``restore()`` rebuilds
the unspent proofs from the mnemonic alone.
"""

from __future__ import annotations

import logging

from monexo.core.amount import checked_sum, split
from monexo.core.errors import (
    DleqVerificationError,
    InvalidAmount,
    KeysetNotFound,
    NotEnoughTokens,
    ProtocolViolation,
)
from monexo.core.models import (
    BlindedMessage,
    BlindedSignature,
    CurrencyUnit,
    MeltQuoteState,
    MintQuoteState,
    Proof,
    Proofs,
    ProofState,
)
from monexo.core.primitives import (
    PostMeltOnchainResponse,
    PostMeltQuoteOnchainResponse,
    PostMintQuoteOnchainResponse,
    ProofStateEntry,
)
from monexo.core.token import TokenV3
from monexo.crypto.dhke import DleqProof, step1_blind, step3_unblind, verify_dleq
from monexo.crypto.keyset import derive_keyset_id, keyset_id_as_int
from monexo.crypto.secp import decode_point, encode_point
from monexo.crypto.secret import DeterministicSecret
from monexo.wallet.client import HttpMintClient
from monexo.wallet.localstore import SqliteLocalStore, WalletKeyset

logger = logging.getLogger("monexo.wallet")


class Wallet:
    """
    E-cash wallet for one mint.

    Usage:
        wallet = Wallet.create(HttpMintClient("http://127.0.0.1:3338"), SqliteLocalStore("wallet.db"))
        wallet.add_mint_keysets()
        quote = wallet.create_mint_quote(20_000)
        ...  # pay quote.amount + quote.fee referencing quote.reference
        if wallet.is_quote_paid(quote.quote):
            wallet.mint_tokens(20_000, quote.quote)
        token = wallet.send_tokens(5_000)
    """

    def __init__(
        self,
        client: HttpMintClient,
        localstore: SqliteLocalStore,
        secret: DeterministicSecret,
    ) -> None:
        self.client = client
        self.localstore = localstore
        self.secret = secret

    @property
    def mint_url(self) -> str:
        return self.client.mint_url

    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------

    @classmethod
    def create(cls, client: HttpMintClient, localstore: SqliteLocalStore) -> "Wallet":
        """Open a wallet, generating and storing a mnemonic on first use."""
        with localstore.transaction():
            seed_words = localstore.get_seed()
            if seed_words is None:
                seed_words = DeterministicSecret.generate_random_seed_words()
                localstore.add_seed(seed_words)
                logger.info("Generated new wallet seed")
        return cls(client, localstore, DeterministicSecret.from_seed_words(seed_words))

    @classmethod
    def from_seed_words(
        cls, client: HttpMintClient, localstore: SqliteLocalStore, seed_words: str
    ) -> "Wallet":
        """
        Open a wallet for an existing mnemonic (recovery).

        Raises:
            ValueError: If the mnemonic is invalid or the store already holds a different seed.
        """
        secret = DeterministicSecret.from_seed_words(seed_words)
        with localstore.transaction():
            stored = localstore.get_seed()
            if stored is None:
                localstore.add_seed(" ".join(seed_words.split()))
            elif stored.split() != seed_words.split():
                raise ValueError("Local store already holds a different seed")
        return cls(client, localstore, secret)

    def get_seed_words(self) -> str | None:
        return self.localstore.get_seed()

    # ------------------------------------------------------------------
    # Keysets
    # ------------------------------------------------------------------

    def get_wallet_keysets(self) -> list[WalletKeyset]:
        return self.localstore.get_keysets()

    def add_mint_keysets(self) -> list[WalletKeyset]:
        """
        Mirror the mint's keysets locally. Known keysets keep their
        derivation counter.
        """
        mint_keysets = self.client.get_keysets().keysets
        result = []
        for info in mint_keysets:
            try:
                keyset_id_as_int(info.id)
            except ValueError:
                logger.warning(f"Ignoring keyset with legacy id {info.id!r}")
                continue

            keys = self.client.get_keys_by_id(info.id).keysets
            match = next((k for k in keys if k.id == info.id and k.unit == info.unit), None)
            if match is None:
                logger.warning(f"Mint returned no public keys for keyset {info.id}")
                continue

            public_keys = {int(amount): pk for amount, pk in match.keys.items()}
            if derive_keyset_id(public_keys) != info.id:
                raise ProtocolViolation(f"Keyset id {info.id} does not match its public keys")

            keyset = WalletKeyset(
                keyset_id=info.id,
                mint_url=self.mint_url,
                unit=info.unit.value,
                active=info.active,
                last_index=0,
                public_keys=public_keys,
            )
            self.localstore.upsert_keyset(keyset)
            result.append(keyset)
        logger.info(f"Stored {len(result)} keysets from {self.mint_url}")
        return result

    def get_active_keyset(self, unit: CurrencyUnit = CurrencyUnit.USD) -> WalletKeyset:
        """
        Raises:
            KeysetNotFound: No active keyset for the unit has been added.
        """
        for keyset in self.localstore.get_keysets():
            if keyset.active and keyset.unit == unit.value:
                return keyset
        raise KeysetNotFound(f"No active keyset for unit {unit.value}")

    # ------------------------------------------------------------------
    # Balance
    # ------------------------------------------------------------------

    def get_proofs(self) -> Proofs:
        return self.localstore.get_proofs()

    def get_balance(self) -> int:
        return self.localstore.get_proofs().total_amount()

    def check_proofs(self) -> list[ProofStateEntry]:
        """Ask the mint for the spend state of every local proof."""
        proofs = self.get_proofs()
        if not len(proofs):
            return []
        return self.client.post_checkstate(proofs.ys())

    # ------------------------------------------------------------------
    # Secrets and blinding
    # ------------------------------------------------------------------

    def create_secrets(self, keyset_id: str, count: int) -> list[tuple[str, int]]:
        """
        Reserve ``count`` derivation counters and return their (secret, r) pairs.

        The advanced counter is committed before returning.
        """
        if count == 0:
            return []
        with self.localstore.transaction():
            keyset = self.localstore.get_keyset(keyset_id)
            if keyset is None:
                raise KeysetNotFound(f"Keyset {keyset_id} not in local store")
            start = keyset.last_index + 1
            self.localstore.update_keyset_last_index(keyset_id, start + count - 1)
        return self.secret.derive_range(keyset_id, start, count)

    def _blind(
        self, keyset: WalletKeyset, amount: int
    ) -> tuple[list[BlindedMessage], list[tuple[str, int]]]:
        amounts = split(amount)
        secrets = self.create_secrets(keyset.keyset_id, len(amounts))
        outputs = [
            BlindedMessage(
                amount=a,
                id=keyset.keyset_id,
                B_=encode_point(step1_blind(secret.encode("utf-8"), r)),
            )
            for a, (secret, r) in zip(amounts, secrets)
        ]
        return outputs, secrets

    def _unblind_one(
        self, keyset: WalletKeyset, sig: BlindedSignature, B_: str, secret: str, r: int
    ) -> Proof:
        pubkey_hex = keyset.public_keys.get(sig.amount)
        if pubkey_hex is None:
            raise ProtocolViolation(f"Keyset {keyset.keyset_id} has no key for amount {sig.amount}")
        try:
            K = decode_point(pubkey_hex)
            C_ = decode_point(sig.C_)
        except ValueError as e:
            raise ProtocolViolation(f"Invalid point in signature: {e}") from e

        if sig.dleq is not None:
            try:
                proof = DleqProof.from_hex(sig.dleq.e, sig.dleq.s)
            except ValueError as e:
                raise ProtocolViolation(f"Invalid DLEQ scalars: {e}") from e
            if not verify_dleq(proof, decode_point(B_), C_, K):
                raise DleqVerificationError(f"DLEQ proof invalid for amount {sig.amount}")

        C = step3_unblind(C_, r, K)
        return Proof(amount=sig.amount, id=sig.id, secret=secret, C=encode_point(C))

    def _unblind(
        self,
        keyset: WalletKeyset,
        signatures: list[BlindedSignature],
        outputs: list[BlindedMessage],
        secrets: list[tuple[str, int]],
    ) -> list[Proof]:
        if len(signatures) != len(outputs):
            raise ProtocolViolation(f"Expected {len(outputs)} signatures, got {len(signatures)}")
        proofs = []
        for sig, output, (secret, r) in zip(signatures, outputs, secrets):
            if sig.amount != output.amount or sig.id != output.id:
                raise ProtocolViolation(
                    f"Signature ({sig.amount}, {sig.id}) does not match output ({output.amount}, {output.id})"
                )
            proofs.append(self._unblind_one(keyset, sig, output.B_, secret, r))
        return proofs

    # ------------------------------------------------------------------
    # Swap / send / receive
    # ------------------------------------------------------------------

    def swap_tokens(
        self, proofs: Proofs, split_amount: int, unit: CurrencyUnit = CurrencyUnit.USD
    ) -> tuple[TokenV3, TokenV3]:
        """
        Swap ``proofs`` into a change token worth ``total - split_amount``
        and a send token worth ``split_amount``, in one mint request.

        Raises:
            NotEnoughTokens: split_amount exceeds the proofs' total.
            ProtocolViolation: The mint's signatures do not add up to the inputs.
        """
        total = proofs.total_amount()
        if split_amount > total:
            raise NotEnoughTokens(f"Cannot split {split_amount} from {total}")
        keyset = self.get_active_keyset(unit)

        change_outputs, change_secrets = self._blind(keyset, total - split_amount)
        send_outputs, send_secrets = self._blind(keyset, split_amount)
        outputs = change_outputs + send_outputs

        signatures = self.client.post_swap(proofs.as_list(), outputs)
        if checked_sum(s.amount for s in signatures) != total:
            raise ProtocolViolation(
                f"Swap returned {checked_sum(s.amount for s in signatures)}, expected {total}"
            )

        new_proofs = self._unblind(keyset, signatures, outputs, change_secrets + send_secrets)
        n = len(change_outputs)
        change = TokenV3.from_proofs(self.mint_url, new_proofs[:n], unit)
        send = TokenV3.from_proofs(self.mint_url, new_proofs[n:], unit)
        return change, send

    def send_tokens(self, amount: int, unit: CurrencyUnit = CurrencyUnit.USD) -> TokenV3:
        """
        Produce a token worth exactly ``amount``.

        The whole active-keyset balance goes into the swap; the change is
        stored and the spent inputs are deleted.

        Raises:
            NotEnoughTokens
        """
        if amount <= 0:
            raise InvalidAmount("Send amount must be positive")
        keyset = self.get_active_keyset(unit)
        inputs = self.get_proofs().proofs_by_keyset(keyset.keyset_id)
        if inputs.total_amount() < amount:
            raise NotEnoughTokens(f"Need {amount}, have {inputs.total_amount()}")

        change, send = self.swap_tokens(inputs, amount, unit)

        with self.localstore.transaction():
            self.localstore.delete_proofs(inputs)
            self.localstore.add_proofs(change.proofs)
        logger.info(f"Sent {amount}: {len(inputs)} inputs, change {change.total_amount()}")
        return send

    def receive_tokens(self, token: TokenV3 | str) -> Proofs:
        """
        Redeem a token by swapping it for fresh proofs.

        Raises:
            TokenDecodeError: The token string is malformed.
            ProofAlreadyUsed: The token was spent already.
        """
        if isinstance(token, str):
            token = TokenV3.deserialize(token)
        proofs = token.proofs
        if not len(proofs):
            raise InvalidAmount("Token contains no proofs")
        if token.mint and token.mint.rstrip("/") != self.mint_url:
            logger.warning(f"Token names mint {token.mint}, redeeming at {self.mint_url}")

        unit = token.unit or CurrencyUnit.USD
        _, redeemed = self.swap_tokens(proofs, proofs.total_amount(), unit)
        self.localstore.add_proofs(redeemed.proofs)
        logger.info(f"Received {redeemed.total_amount()}")
        return redeemed.proofs

    # ------------------------------------------------------------------
    # Mint
    # ------------------------------------------------------------------

    def create_mint_quote(self, amount: int) -> PostMintQuoteOnchainResponse:
        return self.client.post_mint_quote_onchain(amount)

    def is_quote_paid(self, quote_id: str) -> bool:
        quote = self.client.get_mint_quote_onchain(quote_id)
        return quote.state in (MintQuoteState.PAID, MintQuoteState.ISSUED)

    def mint_tokens(
        self, amount: int, quote_id: str, unit: CurrencyUnit = CurrencyUnit.USD
    ) -> TokenV3:
        """Mint ``amount`` against a paid quote and store the proofs."""
        keyset = self.get_active_keyset(unit)
        outputs, secrets = self._blind(keyset, amount)
        signatures = self.client.post_mint_onchain(quote_id, outputs)
        proofs = self._unblind(keyset, signatures, outputs, secrets)

        self.localstore.add_proofs(proofs)
        logger.info(f"Minted {amount} against quote {quote_id}")
        return TokenV3.from_proofs(self.mint_url, proofs, unit)

    # ------------------------------------------------------------------
    # Melt
    # ------------------------------------------------------------------

    def create_melt_quote(self, amount: int, address: str) -> PostMeltQuoteOnchainResponse:
        quotes = self.client.post_melt_quote_onchain(amount, address)
        if not quotes:
            raise ProtocolViolation("Mint returned no melt quote")
        return quotes[0]

    def melt_tokens(
        self, quote: PostMeltQuoteOnchainResponse, unit: CurrencyUnit = CurrencyUnit.USD
    ) -> PostMeltOnchainResponse:
        """
        Pay a melt quote with exactly ``quote.amount`` worth of proofs,
        swapping first when no exact subset is at hand.
        """
        keyset = self.get_active_keyset(unit)
        selected = self.get_proofs().proofs_by_keyset(keyset.keyset_id).proofs_for_amount(quote.amount)

        if selected.total_amount() != quote.amount:
            change, send = self.swap_tokens(selected, quote.amount, unit)
            with self.localstore.transaction():
                self.localstore.delete_proofs(selected)
                self.localstore.add_proofs(change.proofs)
                self.localstore.add_proofs(send.proofs)
            selected = send.proofs

        result = self.client.post_melt_onchain(quote.quote, selected.as_list())
        if result.state == MeltQuoteState.PAID:
            self.localstore.delete_proofs(selected)
            logger.info(f"Melted {quote.amount} (quote {quote.quote}), txid={result.txid}")
        return result

    def pay_onchain(self, address: str, amount: int) -> PostMeltOnchainResponse:
        """Quote and melt in one step."""
        return self.melt_tokens(self.create_melt_quote(amount, address))

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    def restore(self, batch_size: int = 25, max_empty_batches: int = 2) -> int:
        """
        Rebuild unspent proofs from the mnemonic.

        For every local keyset, derives outputs in batches and asks the
        mint for signatures it issued on them, stopping after
        ``max_empty_batches`` consecutive batches without a hit. Restored
        unspent proofs are stored and each keyset's counter is moved past
        the last index found.

        Returns:
            Total amount of proofs not already held locally.
        """
        restored_total = 0
        for keyset in self.localstore.get_keysets():
            start, empty, last_found = 0, 0, None
            while empty < max_empty_batches:
                pairs = self.secret.derive_range(keyset.keyset_id, start, batch_size)
                by_b_ = {}
                outputs = []
                for offset, (secret, r) in enumerate(pairs):
                    B_ = encode_point(step1_blind(secret.encode("utf-8"), r))
                    by_b_[B_] = (start + offset, secret, r)
                    outputs.append(BlindedMessage(amount=1, id=keyset.keyset_id, B_=B_))

                response = self.client.post_restore(outputs)
                if not response.signatures:
                    empty += 1
                    start += batch_size
                    continue
                empty = 0

                proofs = []
                for output, sig in zip(response.outputs, response.signatures):
                    if output.B_ not in by_b_:
                        raise ProtocolViolation("Mint restored an output that was not requested")
                    index, secret, r = by_b_[output.B_]
                    proofs.append(self._unblind_one(keyset, sig, output.B_, secret, r))
                    last_found = index if last_found is None else max(last_found, index)

                states = self.client.post_checkstate([p.y for p in proofs])
                spent = {s.Y for s in states if s.state != ProofState.UNSPENT}
                unspent = [p for p in proofs if p.y not in spent]
                held = {p.secret for p in self.localstore.get_proofs()}
                new = [p for p in unspent if p.secret not in held]
                self.localstore.add_proofs(new)
                restored_total += checked_sum(p.amount for p in new)
                start += batch_size

            if last_found is not None and last_found > keyset.last_index:
                self.localstore.update_keyset_last_index(keyset.keyset_id, last_found)
            logger.info(f"Restore of keyset {keyset.keyset_id} done, last index {last_found}")
        return restored_total

    def get_mint_info(self):
        return self.client.get_info()
