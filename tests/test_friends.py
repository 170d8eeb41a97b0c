import pytest

from uconnect_api.app.core.errors import Conflict, InvalidInput, NotFound
from uconnect_api.app.services.friend_service import FriendService
from uconnect_api.app.services.membership_service import MembershipOracle


@pytest.fixture
def pair(factory):
    return factory.account("alice"), factory.account("bob")


async def test_add_friend_writes_both_directions(factory, pair):
    alice, bob = pair

    await FriendService.add_friend(alice, str(bob))

    edges = factory.fetch("SELECT account_id, friend_id FROM friendships ORDER BY account_id")
    assert [(e["account_id"], e["friend_id"]) for e in edges] == [(alice, bob), (bob, alice)]
    assert await MembershipOracle.are_mutual_friends(alice, bob)
    assert await MembershipOracle.are_mutual_friends(bob, alice)


async def test_cannot_befriend_yourself(pair):
    alice, _ = pair

    with pytest.raises(InvalidInput):
        await FriendService.add_friend(alice, str(alice))


async def test_unknown_account_is_not_found(pair):
    alice, _ = pair

    with pytest.raises(NotFound):
        await FriendService.add_friend(alice, "999")


async def test_malformed_account_id(pair):
    alice, _ = pair

    with pytest.raises(InvalidInput):
        await FriendService.add_friend(alice, "bob")


async def test_adding_twice_conflicts(pair):
    alice, bob = pair
    await FriendService.add_friend(alice, str(bob))

    with pytest.raises(Conflict):
        await FriendService.add_friend(bob, str(alice))


async def test_remove_friend_deletes_both_directions(factory, pair):
    alice, bob = pair
    await FriendService.add_friend(alice, str(bob))

    await FriendService.remove_friend(bob, str(alice))

    assert factory.fetch("SELECT * FROM friendships") == []
    assert not await MembershipOracle.are_mutual_friends(alice, bob)
    with pytest.raises(InvalidInput):
        await FriendService.remove_friend(bob, str(alice))


async def test_half_edge_is_not_a_mutual_friendship(factory, pair):
    alice, bob = pair
    factory.half_edge(alice, bob)

    assert not await MembershipOracle.are_mutual_friends(alice, bob)


async def test_listing_friends_heals_half_edges(factory, pair):
    alice, bob = pair
    factory.half_edge(alice, bob)

    friends = await FriendService.list_friends(bob)

    assert [f.username for f in friends] == ["alice"]
    assert await MembershipOracle.are_mutual_friends(alice, bob)
    assert await FriendService.repair_friendships(bob) == 0


async def test_add_friend_completes_half_edge(factory, pair):
    alice, bob = pair
    factory.half_edge(bob, alice)

    await FriendService.add_friend(alice, str(bob))

    assert await MembershipOracle.are_mutual_friends(alice, bob)


async def test_half_edge_can_be_removed_from_either_side(factory, pair):
    alice, bob = pair
    factory.half_edge(alice, bob)

    await FriendService.remove_friend(bob, str(alice))

    assert factory.fetch("SELECT * FROM friendships") == []


def test_friend_endpoints(client, factory, pair):
    alice, bob = pair
    carol = factory.account("carol")

    assert client.post(f"/api/v1/estudiante/amigos/{bob}", headers=factory.headers(alice)).status_code == 200
    assert client.post(f"/api/v1/estudiante/amigos/{carol}", headers=factory.headers(alice)).status_code == 200
    again = client.post(f"/api/v1/estudiante/amigos/{bob}", headers=factory.headers(alice))
    assert again.status_code == 409

    friends = client.get("/api/v1/estudiante/amigos", headers=factory.headers(alice)).json()
    assert [f["username"] for f in friends] == ["bob", "carol"]

    assert client.delete(f"/api/v1/estudiante/amigos/{alice}", headers=factory.headers(carol)).status_code == 200
    friends = client.get("/api/v1/estudiante/amigos", headers=factory.headers(alice)).json()
    assert [f["username"] for f in friends] == ["bob"]
