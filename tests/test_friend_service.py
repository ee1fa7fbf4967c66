import pytest

from coincatcher.exceptions import (
    DuplicateRequestError, InvalidStateError, NotFoundError, PermissionDeniedError, ValidationError
)
from coincatcher.models.request import FriendRequest, RequestStatus


async def test_send_and_accept(friends, alice, bob):
    request = await friends.send_request(alice.account_id, bob.account_id)

    assert request.request_id == FriendRequest.pair_key(bob.account_id, alice.account_id)
    assert request.payload.from_name == "Alice"
    assert [r.request_id for r in await friends.incoming(bob.account_id)] == [request.request_id]

    accepted = await friends.respond(bob.account_id, request.request_id, accept=True)
    assert accepted.status == RequestStatus.ACCEPTED
    assert await friends.incoming(bob.account_id) == []
    for account_id in (alice.account_id, bob.account_id):
        friends_of = await friends.list_friends(account_id)
        assert [f.other(account_id) for f in friends_of] == [
            bob.account_id if account_id == alice.account_id else alice.account_id
        ]


async def test_duplicates_are_refused(friends, alice, bob):
    await friends.send_request(alice.account_id, bob.account_id)
    with pytest.raises(DuplicateRequestError):
        await friends.send_request(bob.account_id, alice.account_id)


async def test_declined_request_can_be_sent_again(friends, alice, bob):
    request = await friends.send_request(alice.account_id, bob.account_id)
    await friends.respond(bob.account_id, request.request_id, accept=False)

    again = await friends.send_request(alice.account_id, bob.account_id)
    assert again.status == RequestStatus.PENDING


async def test_only_recipient_responds(friends, alice, bob):
    request = await friends.send_request(alice.account_id, bob.account_id)
    with pytest.raises(PermissionDeniedError):
        await friends.respond(alice.account_id, request.request_id, accept=True)

    await friends.respond(bob.account_id, request.request_id, accept=True)
    with pytest.raises(InvalidStateError):
        await friends.respond(bob.account_id, request.request_id, accept=False)


async def test_invalid_requests(friends, alice):
    with pytest.raises(ValidationError):
        await friends.send_request(alice.account_id, alice.account_id)
    with pytest.raises(NotFoundError):
        await friends.send_request(alice.account_id, "999")


async def test_remove(friends, users, alice, bob):
    carol = (await users.register("300", "Carol", "carol")).account
    request = await friends.send_request(alice.account_id, bob.account_id)
    await friends.respond(bob.account_id, request.request_id, accept=True)

    with pytest.raises(PermissionDeniedError):
        await friends.remove(carol.account_id, request.request_id)

    await friends.remove(bob.account_id, request.request_id)
    assert await friends.list_friends(alice.account_id) == []
    with pytest.raises(NotFoundError):
        await friends.remove(alice.account_id, request.request_id)
