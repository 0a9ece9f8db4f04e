"""Distributed key generation as a message-driven state machine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Tuple

from .keygen_rounds import LocalKey, ProceedError, Round0, Round1, Round2, Round3, Round4
from .store import Msg, Simulation, StoreError

_ROUND_TYPES = (Round0, Round1, Round2, Round3, Round4)
_TOTAL_ROUNDS = 4


class KeygenError(Exception):
    """Base class of key generation errors."""

    is_critical = True


class TooFewParties(KeygenError):
    def __init__(self):
        super().__init__("at least 2 parties are required for keygen")


class InvalidThreshold(KeygenError):
    def __init__(self):
        super().__init__("threshold is not in range [1; n-1]")


class InvalidPartyIndex(KeygenError):
    def __init__(self):
        super().__init__("party index is not in range [1; n]")


class ProceedRoundError(KeygenError):
    """A round failed to proceed; `error` holds the round's verification failure."""

    def __init__(self, error: ProceedError):
        super().__init__(f"proceed round: {error}")
        self.error = error

    @property
    def bad_actors(self) -> List[int]:
        return self.error.bad_actors


class HandleMessageError(KeygenError):
    """A received message did not pass pre-validation."""

    def __init__(self, error: StoreError):
        super().__init__(f"received message didn't pass pre-validation: {error}")
        self.error = error


class ReceivedOutOfOrderMessage(KeygenError):
    """A message arrived for a round whose messages are no longer collected."""

    def __init__(self, current_round: int, msg_round: int):
        super().__init__(
            f"didn't expect to receive message from round {msg_round} "
            f"(being at round {current_round})"
        )
        self.current_round = current_round
        self.msg_round = msg_round


class DoublePickOutput(KeygenError):
    def __init__(self):
        super().__init__("pick_output called twice")


class _InternalError(KeygenError):
    """An internal invariant was broken."""


@dataclass(frozen=True)
class ProtocolMessage:
    """Message body sent on the wire: the round it belongs to and its payload."""

    round: int
    body: Any

    def __post_init__(self):
        if not 1 <= self.round <= _TOTAL_ROUNDS:
            raise ValueError(f"keygen has no round {self.round}")


@dataclass(frozen=True)
class _Final:
    key: LocalKey


class _RoundOutput:
    """Wraps bodies a round emits into protocol messages of the given round."""

    def __init__(self, queue: List[Msg], round_no: int):
        self._queue = queue
        self._round_no = round_no

    def append(self, msg: Msg) -> None:
        self._queue.append(msg.map_body(lambda body: ProtocolMessage(self._round_no, body)))


class Keygen:
    """One party of the key generation protocol; produces a LocalKey when finished."""

    def __init__(self, i: int, t: int, n: int):
        if n < 2:
            raise TooFewParties()
        if t == 0 or t >= n:
            raise InvalidThreshold()
        if i == 0 or i > n:
            raise InvalidPartyIndex()
        self._round: Any = Round0(party_i=i, t=t, n=n)
        self._stores = {
            1: Round1.expects_messages(i, n),
            2: Round2.expects_messages(i, n),
            3: Round3.expects_messages(i, n),
            4: Round4.expects_messages(i, n),
        }
        self._queue: List[Msg] = []
        self._party_i = i
        self._party_n = n
        self._proceed_round(False)

    def _round_index(self) -> Optional[int]:
        for index, round_type in enumerate(_ROUND_TYPES):
            if isinstance(self._round, round_type):
                return index
        return None

    def _proceed_round(self, may_block: bool) -> None:
        while True:
            index = self._round_index()
            if index is None:
                return
            current = self._round
            if current.is_expensive() and not may_block:
                return
            if index == 0:
                self._round = None
                self._round = current.proceed(_RoundOutput(self._queue, 1))
                continue
            store = self._stores[index]
            if store is not None and store.wants_more():
                return
            self._round = None
            if store is None:
                raise _InternalError("store gone")
            self._stores[index] = None
            try:
                received = store.finish()
            except StoreError as exc:
                raise _InternalError(f"cannot retrieve round messages: {exc}") from exc
            try:
                if index == _TOTAL_ROUNDS:
                    self._round = _Final(current.proceed(received))
                else:
                    self._round = current.proceed(
                        received, _RoundOutput(self._queue, index + 1)
                    )
            except ProceedError as exc:
                raise ProceedRoundError(exc) from exc

    def handle_incoming(self, msg: Msg) -> None:
        """Accept a message from another party and proceed if that is cheap."""
        body = msg.body
        if not isinstance(body, ProtocolMessage):
            raise TypeError("message body must be a ProtocolMessage")
        store = self._stores.get(body.round)
        if store is None:
            raise ReceivedOutOfOrderMessage(self.current_round(), body.round)
        try:
            store.push_msg(Msg(msg.sender, msg.receiver, body.body))
        except StoreError as exc:
            raise HandleMessageError(exc) from exc
        self._proceed_round(False)

    def message_queue(self) -> List[Msg]:
        """Outgoing messages; the caller sends and clears them."""
        return self._queue

    def wants_to_proceed(self) -> bool:
        index = self._round_index()
        if index is None:
            return False
        if index == 0:
            return True
        store = self._stores[index]
        return store is None or not store.wants_more()

    def proceed(self) -> None:
        """Proceed with the current round, doing expensive computation if needed."""
        self._proceed_round(True)

    def round_timeout(self) -> None:
        return None

    def is_finished(self) -> bool:
        return isinstance(self._round, _Final)

    def pick_output(self) -> Optional[LocalKey]:
        """The local key once finished, None before; raises on a second call."""
        if isinstance(self._round, _Final):
            key = self._round.key
            self._round = None
            return key
        if self._round is None:
            raise DoublePickOutput()
        return None

    def current_round(self) -> int:
        index = self._round_index()
        return _TOTAL_ROUNDS + 1 if index is None else index

    def total_rounds(self) -> int:
        return _TOTAL_ROUNDS

    def party_ind(self) -> int:
        return self._party_i

    def parties(self) -> int:
        return self._party_n

    def round_blame(self) -> Tuple[int, List[int]]:
        """Number of messages still awaited this round and the parties that owe them."""
        index = self._round_index()
        if not index:
            return 0, []
        store = self._stores[index]
        return store.blame() if store is not None else (0, [])

    def __repr__(self) -> str:
        if isinstance(self._round, _Final):
            round_name = "[Final]"
        elif self._round is None:
            round_name = "[Gone]"
        else:
            round_name = str(self._round_index())
        stores = " ".join(
            f"msgs{no}="
            + (
                "[None]"
                if store is None
                else f"[{store.messages_received()}/{store.messages_total()}]"
            )
            for no, store in self._stores.items()
        )
        return f"{{Keygen at round={round_name} {stores} queue=[len={len(self._queue)}]}}"


def simulate_keygen(t: int, n: int) -> List[LocalKey]:
    """Run key generation for n parties with threshold t in one process."""
    simulation = Simulation()
    for i in range(1, n + 1):
        simulation.add_party(Keygen(i, t, n))
    return simulation.run()