"""Integration tests for groups, memberships, invitations, and group threads."""

from __future__ import annotations

import pytest


def _auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


async def _create_group(client, token: str, name: str, is_private: bool = False) -> dict:
    response = await client.post(
        "/api/groups",
        json={"name": name, "description": f"{name} talk", "isPrivate": is_private},
        headers=_auth(token),
    )
    assert response.status_code == 201, response.text
    return response.json()["group"]


async def _follow(client, token: str, user_id: str) -> None:
    response = await client.post(
        "/api/users/follow", json={"userId": user_id, "action": "follow"}, headers=_auth(token)
    )
    assert response.status_code == 200, response.text


@pytest.mark.asyncio
async def test_create_group_makes_owner_first_member(api_client, register_account) -> None:
    """The creator owns the group and is counted as its only member."""
    async with api_client() as client:
        alice, token = await register_account(client, "alice", "a@x.com")
        group = await _create_group(client, token, "Chess")
        members = await client.get(
            "/api/groups/members", params={"groupId": group["id"]}, headers=_auth(token)
        )

    assert group["ownerId"] == alice["id"]
    assert group["memberCount"] == 1
    assert group["isMember"] is True
    assert [(m["id"], m["role"]) for m in members.json()["members"]] == [(alice["id"], "owner")]


@pytest.mark.asyncio
async def test_join_public_group_notifies_owner(api_client, register_account) -> None:
    """Joining a public group adds a member and sends a group_join notification."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        _, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Chess")
        joined = await client.post(
            "/api/groups/join", json={"groupId": group["id"]}, headers=_auth(bob_token)
        )
        again = await client.post(
            "/api/groups/join", json={"groupId": group["id"]}, headers=_auth(bob_token)
        )
        notifications = await client.get("/api/notifications", headers=_auth(alice_token))

    assert joined.status_code == 200
    assert joined.json()["group"]["memberCount"] == 2
    assert joined.json()["group"]["isMember"] is True
    assert again.status_code == 409
    assert [item["type"] for item in notifications.json()["notifications"]] == ["group_join"]


@pytest.mark.asyncio
async def test_private_group_is_hidden_and_requires_invitation(
    api_client, register_account
) -> None:
    """Non-members neither see nor join a private group uninvited."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        _, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Secret", is_private=True)
        listed = await client.get("/api/groups", headers=_auth(bob_token))
        join = await client.post(
            "/api/groups/join", json={"groupId": group["id"]}, headers=_auth(bob_token)
        )
        feed = await client.get(
            "/api/threads", params={"groupId": group["id"]}, headers=_auth(bob_token)
        )
        members = await client.get(
            "/api/groups/members", params={"groupId": group["id"]}, headers=_auth(bob_token)
        )

    assert listed.json()["groups"] == []
    assert join.status_code == 403
    assert feed.status_code == 403
    assert members.status_code == 403


@pytest.mark.asyncio
async def test_private_group_invite_requires_mutual_follow(api_client, register_account) -> None:
    """Invites to private groups only go to mutual followers."""
    async with api_client() as client:
        alice, alice_token = await register_account(client, "alice", "a@x.com")
        bob, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Secret", is_private=True)
        body = {"groupId": group["id"], "inviteeId": bob["id"]}

        await _follow(client, alice_token, bob["id"])
        one_way = await client.post("/api/groups/invite", json=body, headers=_auth(alice_token))
        await _follow(client, bob_token, alice["id"])
        mutual = await client.post("/api/groups/invite", json=body, headers=_auth(alice_token))
        duplicate = await client.post("/api/groups/invite", json=body, headers=_auth(alice_token))

    assert one_way.status_code == 400
    assert mutual.status_code == 201
    assert mutual.json()["invitation"]["status"] == "pending"
    assert duplicate.status_code == 409


@pytest.mark.asyncio
async def test_accepting_invitation_grants_membership(api_client, register_account) -> None:
    """An accepted invitation makes the invitee a member and lets them post."""
    async with api_client() as client:
        alice, alice_token = await register_account(client, "alice", "a@x.com")
        bob, bob_token = await register_account(client, "bobby", "b@x.com")
        await _follow(client, alice_token, bob["id"])
        await _follow(client, bob_token, alice["id"])
        group = await _create_group(client, alice_token, "Secret", is_private=True)
        invited = await client.post(
            "/api/groups/invite",
            json={"groupId": group["id"], "inviteeId": bob["id"]},
            headers=_auth(alice_token),
        )
        pending = await client.get("/api/groups/invite", headers=_auth(bob_token))
        accepted = await client.put(
            "/api/groups/invite",
            json={"invitationId": invited.json()["invitation"]["id"], "action": "accept"},
            headers=_auth(bob_token),
        )
        post = await client.post(
            "/api/threads",
            json={"content": "glad to be here", "groupId": group["id"]},
            headers=_auth(bob_token),
        )
        pending_after = await client.get("/api/groups/invite", headers=_auth(bob_token))
        notifications = await client.get("/api/notifications", headers=_auth(bob_token))

    assert [item["groupId"] for item in pending.json()] == [group["id"]]
    assert accepted.status_code == 200
    assert accepted.json()["invitation"]["status"] == "accepted"
    assert post.status_code == 201
    assert post.json()["thread"]["visibility"] == "group"
    assert pending_after.json() == []
    assert "group_invite" in [item["type"] for item in notifications.json()["notifications"]]


@pytest.mark.asyncio
async def test_declined_invitation_cannot_be_answered_twice(api_client, register_account) -> None:
    """Only pending invitations can be answered."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        bob, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Chess")
        invited = await client.post(
            "/api/groups/invite",
            json={"groupId": group["id"], "inviteeId": bob["id"]},
            headers=_auth(alice_token),
        )
        body = {"invitationId": invited.json()["invitation"]["id"], "action": "decline"}
        declined = await client.put("/api/groups/invite", json=body, headers=_auth(bob_token))
        again = await client.put("/api/groups/invite", json=body, headers=_auth(bob_token))
        stolen = await client.put("/api/groups/invite", json=body, headers=_auth(alice_token))

    assert declined.json()["invitation"]["status"] == "declined"
    assert again.status_code == 409
    assert stolen.status_code == 404


@pytest.mark.asyncio
async def test_non_member_cannot_post_to_group(api_client, register_account) -> None:
    """Group posting requires membership."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        _, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Chess")
        response = await client.post(
            "/api/threads",
            json={"content": "let me in", "groupId": group["id"]},
            headers=_auth(bob_token),
        )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_group_threads_stay_out_of_main_feed(api_client, register_account) -> None:
    """Group posts are listed under the group, not in the home feed."""
    async with api_client() as client:
        _, token = await register_account(client, "alice", "a@x.com")
        group = await _create_group(client, token, "Chess")
        await client.post(
            "/api/threads",
            json={"content": "group only", "groupId": group["id"]},
            headers=_auth(token),
        )
        home = await client.get("/api/threads", headers=_auth(token))
        in_group = await client.get(
            "/api/threads", params={"groupId": group["id"]}, headers=_auth(token)
        )

    assert home.json()["threads"] == []
    assert [item["content"] for item in in_group.json()["threads"]] == ["group only"]


@pytest.mark.asyncio
async def test_leave_group_rules(api_client, register_account) -> None:
    """Members can leave, owners cannot, and leaving twice is not found."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        _, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Chess")
        await client.post(
            "/api/groups/join", json={"groupId": group["id"]}, headers=_auth(bob_token)
        )
        params = {"groupId": group["id"]}
        left = await client.delete("/api/groups/join", params=params, headers=_auth(bob_token))
        again = await client.delete("/api/groups/join", params=params, headers=_auth(bob_token))
        owner = await client.delete("/api/groups/join", params=params, headers=_auth(alice_token))

    assert left.status_code == 200
    assert again.status_code == 404
    assert owner.status_code == 400


@pytest.mark.asyncio
async def test_only_owner_deletes_group(api_client, register_account) -> None:
    """Members cannot delete a group; its owner can."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        _, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Chess")
        forbidden = await client.delete(
            "/api/groups", params={"id": group["id"]}, headers=_auth(bob_token)
        )
        deleted = await client.delete(
            "/api/groups", params={"id": group["id"]}, headers=_auth(alice_token)
        )
        listed = await client.get("/api/groups", headers=_auth(alice_token))

    assert forbidden.status_code == 403
    assert deleted.status_code == 200
    assert listed.json()["groups"] == []


@pytest.mark.asyncio
async def test_private_group_threads_reject_outsider_reactions_and_replies(
    api_client, register_account
) -> None:
    """Outsiders cannot like or reply to a private group's threads."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        _, bob_token = await register_account(client, "bobby", "b@x.com")
        group = await _create_group(client, alice_token, "Secret", is_private=True)
        created = await client.post(
            "/api/threads",
            json={"content": "private stuff", "groupId": group["id"]},
            headers=_auth(alice_token),
        )
        thread_id = created.json()["thread"]["id"]
        reaction = await client.put(
            "/api/threads",
            json={"threadId": thread_id, "action": "like"},
            headers=_auth(bob_token),
        )
        reply = await client.post(
            "/api/threads",
            json={"content": "let me in", "parentId": thread_id},
            headers=_auth(bob_token),
        )

    assert reaction.status_code == 403
    assert "private stuff" not in reaction.text
    assert reply.status_code == 403


@pytest.mark.asyncio
async def test_reply_to_group_thread_stays_in_the_group(api_client, register_account) -> None:
    """Replies inherit the parent's group and stay out of the main feed."""
    async with api_client() as client:
        _, alice_token = await register_account(client, "alice", "a@x.com")
        group = await _create_group(client, alice_token, "Chess")
        parent = await client.post(
            "/api/threads",
            json={"content": "opening ideas", "groupId": group["id"]},
            headers=_auth(alice_token),
        )
        reply = await client.post(
            "/api/threads",
            json={"content": "try the gambit", "parentId": parent.json()["thread"]["id"]},
            headers=_auth(alice_token),
        )
        replies = await client.get(
            "/api/threads",
            params={"parentId": parent.json()["thread"]["id"]},
            headers=_auth(alice_token),
        )

    assert reply.status_code == 201
    assert reply.json()["thread"]["groupId"] == group["id"]
    assert reply.json()["thread"]["visibility"] == "group"
    assert [item["content"] for item in replies.json()["threads"]] == ["try the gambit"]
