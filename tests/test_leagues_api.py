from escalation.models import ActionLog, League, LeagueMembership, Player


def test_create_league_makes_caller_owner(client, make_user, auth_headers):
    user = make_user()

    response = client.post(
        "/leagues",
        json={"name": "Kill Team Escalation", "maxPlayers": 8, "joinPassword": "secret"},
        headers=auth_headers(user),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["league"]["name"] == "Kill Team Escalation"
    assert data["league"]["isPrivate"] is True
    assert data["league"]["hasPassword"] is True
    assert data["league"]["memberCount"] == 1
    assert data["membership"]["role"] == "owner"
    assert len(data["shareToken"]) == 32


def test_create_league_requires_login_and_name(client, make_user, auth_headers):
    user = make_user()

    anonymous = client.post("/leagues", json={"name": "Nope"})
    nameless = client.post("/leagues", json={"name": "  "}, headers=auth_headers(user))
    tiny = client.post("/leagues", json={"name": "Tiny", "maxPlayers": 0}, headers=auth_headers(user))

    assert anonymous.status_code == 401
    assert anonymous.json()["statusMessage"] == "Unauthorized - Please log in"
    assert nameless.status_code == 400
    assert tiny.status_code == 400
    assert tiny.json()["statusMessage"] == "maxPlayers must be at least 1"


def test_first_login_provisions_user(client, db):
    from jose import jwt

    from escalation.core.config import get_settings

    token = jwt.encode(
        {"sub": "auth|brand-new", "email": "new@example.com"},
        get_settings().AUTH_JWT_SECRET,
        algorithm="HS256",
    )

    response = client.post(
        "/leagues", json={"name": "Fresh"}, headers={"Authorization": f"Bearer {token}"}
    )

    assert response.status_code == 200
    assert response.json()["data"]["league"]["createdByUserId"] is not None


def test_public_leagues_lists_only_open_active(client, make_user, make_league, add_member):
    owner, player = make_user(), make_user()
    open_league = make_league(owner, name="Open", is_private=False)
    add_member(open_league, player)
    make_league(owner, name="Private")
    make_league(owner, name="Closed", is_private=False, status="archived")

    body = client.get("/leagues/public").json()

    assert [league["name"] for league in body["data"]] == ["Open"]
    assert body["data"][0]["memberCount"] == 2


def test_read_league(client, make_league):
    league = make_league(max_players=4, password="secret")

    found = client.get(f"/leagues/{league.id}")
    missing = client.get("/leagues/999")

    assert found.status_code == 200
    assert found.json()["data"]["maxPlayers"] == 4
    assert found.json()["data"]["hasPassword"] is True
    assert missing.status_code == 404
    assert missing.json()["statusMessage"] == "League not found"


def test_patch_league_by_organizer(client, db, make_user, make_league, add_member, auth_headers):
    owner, organizer = make_user(), make_user()
    league = make_league(owner, password="secret")
    add_member(league, organizer, role="organizer")

    response = client.patch(
        f"/leagues/{league.id}",
        json={"name": "Season Two", "maxPlayers": 6, "joinPassword": ""},
        headers=auth_headers(organizer),
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["name"] == "Season Two"
    assert data["maxPlayers"] == 6
    assert data["hasPassword"] is False


def test_patch_league_rejections(client, make_user, make_league, add_member, auth_headers):
    owner, player = make_user(), make_user()
    league = make_league(owner)
    add_member(league, player)
    url = f"/leagues/{league.id}"

    by_player = client.patch(url, json={"name": "Mine now"}, headers=auth_headers(player))
    empty = client.patch(url, json={}, headers=auth_headers(owner))
    bad_status = client.patch(url, json={"status": "paused"}, headers=auth_headers(owner))

    assert by_player.status_code == 403
    assert by_player.json()["statusMessage"] == "Insufficient league permissions"
    assert empty.status_code == 400
    assert empty.json()["statusMessage"] == "No fields to update"
    assert bad_status.status_code == 400


def test_archiving_league_blocks_joins(client, make_user, make_league, auth_headers):
    owner, newcomer = make_user(), make_user()
    league = make_league(owner)

    client.patch(f"/leagues/{league.id}", json={"status": "archived"}, headers=auth_headers(owner))
    response = client.post(
        f"/leagues/{league.id}/join", json={"userId": newcomer.id}, headers=auth_headers(newcomer)
    )

    assert response.status_code == 400
    assert response.json()["statusMessage"] == "League is not accepting new members"


def test_delete_league(client, db, make_user, make_league, add_member, auth_headers):
    owner, player = make_user(), make_user()
    league = make_league(owner)
    league_id = league.id
    add_member(league, player)
    client.post(f"/leagues/{league_id}/players", json={"userId": player.id, "name": "Grot"})

    refused = client.delete(f"/leagues/{league_id}", headers=auth_headers(player))
    response = client.delete(f"/leagues/{league_id}", headers=auth_headers(owner))

    assert refused.status_code == 403
    assert response.status_code == 200
    assert response.json()["message"] == "League deleted successfully"
    db.expire_all()
    assert db.get(League, league_id) is None
    assert db.query(LeagueMembership).filter_by(league_id=league_id).count() == 0
    assert db.query(Player).filter_by(league_id=league_id).count() == 0
    deleted = db.query(ActionLog).filter_by(category="league", action="delete").one()
    assert deleted.league_id is None


def test_share_url_regenerates_token(client, make_user, make_league, auth_headers):
    owner = make_user()
    league = make_league(owner)
    old_token = league.share_token

    response = client.post(
        f"/leagues/{league.id}/share-url",
        headers={**auth_headers(owner), "Origin": "https://league.example.com/"},
    )

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["shareToken"] != old_token
    assert data["shareUrl"] == f"https://league.example.com/join/{data['shareToken']}"

    stale = client.post(
        f"/leagues/join-by-token/{old_token}", json={"userId": owner.id}, headers=auth_headers(owner)
    )
    assert stale.status_code == 404


def test_share_url_falls_back_to_site_url(client, make_user, make_league, auth_headers):
    owner = make_user()
    league = make_league(owner)

    data = client.post(f"/leagues/{league.id}/share-url", headers=auth_headers(owner)).json()["data"]

    assert data["shareUrl"].startswith("http://localhost:3000/join/")


def test_info_by_token_previews_league(client, make_user, make_league):
    """Holders of an invite link can look at the league without logging in."""
    owner = make_user()
    league = make_league(owner, name="Invite Only", max_players=6, password="secret")

    response = client.get(f"/leagues/info-by-token/{league.share_token.upper()}")

    assert response.status_code == 200
    body = response.json()
    assert body["message"] == "League information retrieved successfully"
    assert body["data"]["id"] == league.id
    assert body["data"]["name"] == "Invite Only"
    assert body["data"]["maxPlayers"] == 6
    assert body["data"]["memberCount"] == 1


def test_info_by_token_rejects_bad_tokens(client):
    malformed = client.get("/leagues/info-by-token/not-a-token")
    unknown = client.get(f"/leagues/info-by-token/{'a' * 32}")

    assert malformed.status_code == 400
    assert malformed.json()["statusMessage"] == "Invalid share token"
    assert unknown.status_code == 404
    assert unknown.json()["statusMessage"] == "League not found"


def test_making_league_public_revokes_invite_link(client, make_user, make_league, auth_headers):
    owner, guest = make_user(), make_user()
    league = make_league(owner)
    old_token = league.share_token

    response = client.patch(
        f"/leagues/{league.id}", json={"isPrivate": False}, headers=auth_headers(owner)
    )
    preview = client.get(f"/leagues/info-by-token/{old_token}")
    joined = client.post(
        f"/leagues/join-by-token/{old_token}", json={"userId": guest.id}, headers=auth_headers(guest)
    )

    assert response.status_code == 200
    assert response.json()["data"]["isPrivate"] is False
    assert preview.status_code == 404
    assert joined.status_code == 404
