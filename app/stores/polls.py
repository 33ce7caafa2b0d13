"""
Polls. Every change rebroadcasts the whole poll list.
"""
from typing import Any, Dict, List, Optional

from room_models import Poll, PollCreate, Vote
from rooms import RoomKind
from stores.base import Outbound, RoomStore, broadcast, payload_of, reply
from utils.ids import generate_unique_id


class PollStore(RoomStore):
    kind = RoomKind.POLLS

    def __init__(self, ledger, registry):
        super().__init__(ledger, registry)
        self.polls: List[Poll] = []

    def snapshot(self) -> List[Dict[str, Any]]:
        return [poll.model_dump() for poll in self.polls]

    def find(self, poll_id: str) -> Optional[Poll]:
        return next((poll for poll in self.polls if poll.id == poll_id), None)

    def on_connect(self, conn_id: str) -> List[Outbound]:
        return [reply(conn_id, {"type": "init", "polls": self.snapshot()})]

    def handle_create_poll(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        request = PollCreate.model_validate(payload_of(message))
        poll = Poll(
            id=generate_unique_id({poll.id for poll in self.polls}),
            question=request.question,
            options=request.options,
            votes={index: 0 for index in range(len(request.options))},
        )
        self.polls.append(poll)
        return [broadcast({"type": "polls", "polls": self.snapshot()})]

    def handle_vote(self, conn_id: str, message: Dict[str, Any]) -> List[Outbound]:
        vote = Vote.model_validate(payload_of(message))
        poll = self.find(vote.pollId)
        if poll is None or not 0 <= vote.option < len(poll.options):
            return []

        poll.votes[vote.option] = poll.votes.get(vote.option, 0) + 1
        return [broadcast({"type": "polls", "polls": self.snapshot()})]
