"""Per-round message stores and an in-process simulation of several protocol parties."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Tuple, TypeVar

T = TypeVar("T")


class StoreError(Exception):
    """A message was rejected by a store, or the store was asked for messages it lacks."""


@dataclass(frozen=True)
class Msg(Generic[T]):
    """A protocol message; `receiver` is None for a broadcast."""

    sender: int
    receiver: Optional[int]
    body: T

    def map_body(self, func) -> "Msg":
        return Msg(self.sender, self.receiver, func(self.body))


@dataclass(frozen=True)
class RoundMsgs(Generic[T]):
    """Messages of one round from every other party, ordered by sender index."""

    my_index: int
    messages: Tuple[T, ...]

    def into_vec(self) -> List[T]:
        """Bodies received from the other parties, in sender order."""
        return list(self.messages)

    def into_vec_including_me(self, me: T) -> List[T]:
        """Bodies of all parties in index order, with `me` at this party's position."""
        bodies = list(self.messages)
        bodies.insert(self.my_index - 1, me)
        return bodies


class _Slots(Generic[T]):
    """Bookkeeping shared by the stores: one slot for each of the other n - 1 parties."""

    def __init__(self, i: int, n: int):
        if n < 1:
            raise ValueError("number of parties must be positive")
        if not 1 <= i <= n:
            raise ValueError("party index is not in range [1; n]")
        self._i = i
        self._n = n
        self._slots: Dict[int, T] = {}

    def _store(self, msg: Msg) -> None:
        if msg.sender == self._i:
            raise StoreError("message is from this party itself")
        if not 1 <= msg.sender <= self._n:
            raise StoreError(f"unknown sender {msg.sender}")
        if msg.sender in self._slots:
            raise StoreError(f"message from party {msg.sender} already received")
        self._slots[msg.sender] = msg.body

    def _expected_senders(self) -> List[int]:
        return [j for j in range(1, self._n + 1) if j != self._i]

    def _missing(self) -> List[int]:
        return [j for j in self._expected_senders() if j not in self._slots]

    def _collected(self) -> RoundMsgs:
        if self._missing():
            raise StoreError("store still waits for messages")
        return RoundMsgs(self._i, tuple(self._slots[j] for j in self._expected_senders()))


class BroadcastMsgsStore(_Slots[T]):
    """Store for a round in which every party broadcasts one message."""

    def push_msg(self, msg: Msg) -> None:
        """Store the message, rejecting p2p, foreign or repeated ones."""
        if msg.receiver is not None:
            raise StoreError("expected a broadcast message")
        self._store(msg)

    def wants_more(self) -> bool:
        return bool(self._missing())

    def finish(self) -> RoundMsgs:
        """Return the collected messages; raises StoreError while some are missing."""
        return self._collected()

    def blame(self) -> Tuple[int, List[int]]:
        """Number of messages still missing and the parties that have not sent them."""
        missing = self._missing()
        return len(missing), missing

    def messages_received(self) -> int:
        return len(self._slots)

    def messages_total(self) -> int:
        return self._n - 1


class P2PMsgsStore(_Slots[T]):
    """Store for a round in which every party sends one message to this party."""

    def push_msg(self, msg: Msg) -> None:
        """Store the message, rejecting broadcast, misaddressed, foreign or repeated ones."""
        if msg.receiver is None:
            raise StoreError("expected a point-to-point message")
        if msg.receiver != self._i:
            raise StoreError(f"message is addressed to party {msg.receiver}")
        self._store(msg)

    def wants_more(self) -> bool:
        return bool(self._missing())

    def finish(self) -> RoundMsgs:
        """Return the collected messages; raises StoreError while some are missing."""
        return self._collected()

    def blame(self) -> Tuple[int, List[int]]:
        """Number of messages still missing and the parties that have not sent them."""
        missing = self._missing()
        return len(missing), missing

    def messages_received(self) -> int:
        return len(self._slots)

    def messages_total(self) -> int:
        return self._n - 1


class Simulation:
    """Runs several state machines in one process, delivering their messages to each other."""

    def __init__(self):
        self._parties: List[Any] = []

    def add_party(self, party) -> None:
        self._parties.append(party)

    def _deliver(self, msg: Msg) -> None:
        if msg.receiver is None:
            for party in self._parties:
                if party.party_ind() != msg.sender:
                    party.handle_incoming(msg)
            return
        for party in self._parties:
            if party.party_ind() == msg.receiver:
                party.handle_incoming(msg)
                return
        raise StoreError(f"no party with index {msg.receiver}")

    def run(self) -> list:
        """Run all parties to completion and return their outputs in the order added."""
        while not all(party.is_finished() for party in self._parties):
            proceeded = False
            for party in self._parties:
                if party.wants_to_proceed():
                    party.proceed()
                    proceeded = True
            outgoing = []
            for party in self._parties:
                queue = party.message_queue()
                outgoing.extend(queue)
                queue.clear()
            if not proceeded and not outgoing:
                raise RuntimeError("simulation is stuck: no party can make progress")
            for msg in outgoing:
                self._deliver(msg)
        return [party.pick_output() for party in self._parties]