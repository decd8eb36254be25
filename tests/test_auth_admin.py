import json

from escalation.models import LeagueMembership

ADMIN_HEADERS = {"X-Admin-Token": "test-admin-token"}


def test_me_returns_user_and_active_memberships(client, make_user, make_league, add_member, auth_headers):
    user = make_user("Sam")
    current = make_league(user)
    former = make_league()
    add_member(former, user, status="inactive")

    response = client.get("/auth/me", headers=auth_headers(user))

    assert response.status_code == 200
    body = response.json()
    assert body["user"]["name"] == "Sam"
    assert [m["leagueId"] for m in body["memberships"]] == [current.id]


def test_me_rejects_bad_tokens(client):
    missing = client.get("/auth/me")
    garbage = client.get("/auth/me", headers={"Authorization": "Bearer not-a-jwt"})

    assert missing.status_code == 401
    assert garbage.status_code == 401
    assert garbage.json()["statusMessage"] == "Invalid token"


def test_admin_requires_token(client):
    missing = client.get("/admin/leagues")
    wrong = client.get("/admin/leagues", headers={"X-Admin-Token": "nope"})

    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert wrong.json()["statusMessage"] == "Invalid admin token"


def test_admin_lists_leagues_with_members(client, make_user, make_league, add_member):
    owner, player = make_user(), make_user()
    league = make_league(owner)
    add_member(league, player, status="inactive")

    body = client.get("/admin/leagues", headers=ADMIN_HEADERS).json()

    assert len(body) == 1
    assert body[0]["id"] == league.id
    members = {m["userId"]: m for m in body[0]["members"]}
    assert members[owner.id]["role"] == "owner"
    assert members[player.id]["status"] == "inactive"
    assert members[player.id]["userEmail"] == player.email


def test_admin_logs_filter_by_league(client, make_user, make_league, auth_headers):
    user = make_user()
    headers = auth_headers(user)
    first, second = make_league(), make_league()
    client.post(f"/leagues/{first.id}/join", json={"userId": user.id}, headers=headers)
    client.post(f"/leagues/{second.id}/join", json={"userId": user.id}, headers=headers)
    client.post(f"/leagues/{second.id}/leave", json={"userId": user.id}, headers=headers)

    logs = client.get(
        "/admin/logs", headers=ADMIN_HEADERS, params={"leagueId": second.id}
    ).json()

    assert [log["action"] for log in logs] == ["leave", "join"]
    assert logs[0]["actorEmail"] == user.email
    assert json.loads(logs[0]["details"])["league_archived"] is False


def test_admin_updates_membership(client, make_user, make_league, add_member):
    owner, player = make_user(), make_user()
    league = make_league(owner)
    membership = add_member(league, player, status="inactive")
    url = f"/admin/league-memberships/{membership.id}"

    updated = client.put(url, json={"status": "active", "role": "organizer"}, headers=ADMIN_HEADERS)
    second_owner = client.put(url, json={"role": "owner"}, headers=ADMIN_HEADERS)
    missing = client.put("/admin/league-memberships/999", json={"status": "active"}, headers=ADMIN_HEADERS)

    assert updated.status_code == 200
    assert updated.json()["status"] == "active"
    assert updated.json()["role"] == "organizer"
    assert second_owner.status_code == 400
    assert second_owner.json()["statusMessage"] == "League already has an owner"
    assert missing.status_code == 404


def test_admin_cannot_deactivate_owner(client, db, make_user, make_league, add_member):
    """The owner row stays active while the league has an owner."""
    owner, player = make_user(), make_user()
    league = make_league(owner)
    add_member(league, player)
    owner_row = db.query(LeagueMembership).filter_by(league_id=league.id, user_id=owner.id).one()

    response = client.put(
        f"/admin/league-memberships/{owner_row.id}",
        json={"status": "inactive"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["statusMessage"] == "Use ownership transfer to change the league owner"
    db.expire_all()
    assert db.get(LeagueMembership, owner_row.id).status == "active"


def test_admin_cannot_demote_owner(client, db, make_user, make_league):
    owner = make_user()
    league = make_league(owner)
    owner_row = db.query(LeagueMembership).filter_by(league_id=league.id, user_id=owner.id).one()

    response = client.put(
        f"/admin/league-memberships/{owner_row.id}",
        json={"role": "player"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 400
    db.expire_all()
    assert db.get(LeagueMembership, owner_row.id).role == "owner"


def test_admin_cannot_reactivate_into_archived_league(client, db, make_user, make_league, add_member):
    league = make_league(status="archived")
    membership = add_member(league, make_user(), status="inactive")

    response = client.put(
        f"/admin/league-memberships/{membership.id}",
        json={"status": "active"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["statusMessage"] == "League is not accepting new members"
    db.expire_all()
    assert db.get(LeagueMembership, membership.id).status == "inactive"


def test_admin_cannot_reactivate_into_full_league(client, make_user, make_league, add_member):
    league = make_league(make_user(), max_players=1)
    membership = add_member(league, make_user(), status="inactive")

    response = client.put(
        f"/admin/league-memberships/{membership.id}",
        json={"status": "active"},
        headers=ADMIN_HEADERS,
    )

    assert response.status_code == 400
    assert response.json()["statusMessage"] == "League is full"


def test_admin_update_needs_fields(client, make_user, make_league, add_member):
    membership = add_member(make_league(), make_user())

    response = client.put(
        f"/admin/league-memberships/{membership.id}", json={}, headers=ADMIN_HEADERS
    )

    assert response.status_code == 400
    assert response.json()["statusMessage"] == "No fields to update"
