import pytest


@pytest.fixture
def feed(client, factory):
    """alice and bob share ``software``; carol is only in ``redes``."""
    alice = factory.account("alice")
    bob = factory.account("bob")
    carol = factory.account("carol")
    software = factory.community("software", alice, bob)
    redes = factory.community("redes", bob, carol)
    response = client.post(
        "/api/v1/publicacion",
        data={"community_id": str(software), "text": "Parcial el viernes"},
        headers=factory.headers(alice),
    )
    assert response.status_code == 201
    return {
        "alice": alice,
        "bob": bob,
        "carol": carol,
        "software": software,
        "redes": redes,
        "publication": response.json()["id"],
    }


def comment(client, factory, account_id, publication_id, community_id, text="Nos vemos"):
    return client.post(
        "/api/v1/comentario",
        json={"publication_id": publication_id, "community_id": community_id, "text": text},
        headers=factory.headers(account_id),
    )


def test_member_comment_is_stored_and_broadcast(client, factory, publisher, feed):
    response = comment(client, factory, feed["bob"], feed["publication"], feed["software"], "Voy")

    assert response.status_code == 201
    body = response.json()
    assert body["text"] == "Voy"
    assert body["community_id"] == feed["software"]
    assert body["author"]["username"] == "bob"
    name, payload = publisher.events[-1]
    assert name == f"newComentario_{feed['software']}"
    assert payload["id"] == body["id"]
    assert payload["author"]["id"] == feed["bob"]


def test_missing_fields_are_reported_before_malformed_ids(client, factory, feed):
    response = client.post(
        "/api/v1/comentario",
        json={"publication_id": "abc", "community_id": feed["software"]},
        headers=factory.headers(feed["bob"]),
    )

    assert response.status_code == 400
    assert "Missing required fields" in response.json()["error"]


def test_malformed_ids_are_rejected(client, factory, feed):
    response = comment(client, factory, feed["bob"], "abc", feed["software"])

    assert response.status_code == 400
    assert response.json()["error"] == "Invalid ids"


def test_unknown_publication_is_not_found(client, factory, feed):
    response = comment(client, factory, feed["bob"], 999, feed["software"])

    assert response.status_code == 404


def test_comment_must_target_the_publication_community(client, factory, publisher, feed):
    published = len(publisher.events)

    response = comment(client, factory, feed["bob"], feed["publication"], feed["redes"])

    assert response.status_code == 400
    assert factory.fetch("SELECT id FROM comments") == []
    assert len(publisher.events) == published


def test_non_member_cannot_comment(client, factory, publisher, feed):
    published = len(publisher.events)

    response = comment(client, factory, feed["carol"], feed["publication"], feed["software"])

    assert response.status_code == 403
    assert factory.fetch("SELECT id FROM comments") == []
    assert len(publisher.events) == published


def test_author_edits_comment(client, factory, publisher, feed):
    created = comment(client, factory, feed["bob"], feed["publication"], feed["software"]).json()

    response = client.put(
        f"/api/v1/comentario/{created['id']}",
        json={"text": "Mejor el sábado"},
        headers=factory.headers(feed["bob"]),
    )

    assert response.status_code == 200
    edited = response.json()["comment"]
    assert edited["text"] == "Mejor el sábado"
    assert edited["updated_at"] is not None
    name, payload = publisher.events[-1]
    assert name == f"updateComentario_{feed['software']}"
    assert payload["text"] == "Mejor el sábado"
    assert payload["author"] == created["author"]
    assert payload["publication_id"] == feed["publication"]


def test_only_the_author_may_edit(client, factory, feed):
    created = comment(client, factory, feed["bob"], feed["publication"], feed["software"]).json()

    response = client.put(
        f"/api/v1/comentario/{created['id']}",
        json={"text": "hackeado"},
        headers=factory.headers(feed["alice"]),
    )

    assert response.status_code == 403
    rows = factory.fetch("SELECT text FROM comments WHERE id = ?", created["id"])
    assert rows[0]["text"] == "Nos vemos"


def test_editing_requires_a_token(client, factory, feed):
    created = comment(client, factory, feed["bob"], feed["publication"], feed["software"]).json()

    response = client.put(f"/api/v1/comentario/{created['id']}", json={"text": "anónimo"})

    assert response.status_code == 401
    assert response.headers["WWW-Authenticate"] == "Bearer"


def test_edit_with_blank_text_is_rejected(client, factory, feed):
    created = comment(client, factory, feed["bob"], feed["publication"], feed["software"]).json()

    response = client.put(
        f"/api/v1/comentario/{created['id']}",
        json={"text": "   "},
        headers=factory.headers(feed["bob"]),
    )

    assert response.status_code == 400


def test_author_deletes_comment(client, factory, publisher, feed):
    created = comment(client, factory, feed["bob"], feed["publication"], feed["software"]).json()

    response = client.delete(f"/api/v1/comentario/{created['id']}", headers=factory.headers(feed["bob"]))

    assert response.status_code == 200
    assert publisher.events[-1] == (
        f"deleteComentario_{feed['software']}",
        {
            "commentId": created["id"],
            "publicationId": feed["publication"],
            "communityId": feed["software"],
        },
    )
    again = client.delete(f"/api/v1/comentario/{created['id']}", headers=factory.headers(feed["bob"]))
    assert again.status_code == 404


def test_only_the_author_may_delete(client, factory, feed):
    created = comment(client, factory, feed["bob"], feed["publication"], feed["software"]).json()

    response = client.delete(f"/api/v1/comentario/{created['id']}", headers=factory.headers(feed["alice"]))

    assert response.status_code == 403


def test_comments_are_listed_oldest_first(client, factory, feed):
    for text in ("primero", "segundo", "tercero"):
        comment(client, factory, feed["bob"], feed["publication"], feed["software"], text)

    response = client.get(f"/api/v1/publicacion/{feed['publication']}", headers=factory.headers(feed["alice"]))

    assert response.status_code == 200
    assert [c["text"] for c in response.json()] == ["primero", "segundo", "tercero"]


def test_listing_comments_requires_membership(client, factory, feed):
    response = client.get(f"/api/v1/publicacion/{feed['publication']}", headers=factory.headers(feed["carol"]))

    assert response.status_code == 403


def test_listing_comments_of_unknown_publication(client, factory, feed):
    response = client.get("/api/v1/publicacion/999", headers=factory.headers(feed["alice"]))

    assert response.status_code == 404
