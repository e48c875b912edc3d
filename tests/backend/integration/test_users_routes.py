import pytest

from forum.models.post import Comment, Post
from forum.models.user import User


pytestmark = pytest.mark.asyncio


async def make_post(author, category, title: str, status: str = "published", views: int = 0) -> Post:
    return await Post.create(
        title=title,
        content="Some content that is long enough.",
        author=author,
        category=category,
        slug=title.lower().replace(" ", "-"),
        status=status,
        views=views,
    )


async def test_admin_lists_and_searches_users(client, create_admin, create_user, auth_header_factory):
    admin, admin_pw = await create_admin()
    await create_user(username="alice_dev", first_name="Alice")
    await create_user(username="bob_ops")
    admin_headers = await auth_header_factory(admin, admin_pw)

    resp = await client.get("/api/v1/users", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["pagination"]["total"] == 3
    assert all("password_hash" not in u for u in resp.json()["items"])

    search = await client.get("/api/v1/users", params={"search": "ALICE"}, headers=admin_headers)
    assert [u["username"] for u in search.json()["items"]] == ["alice_dev"]

    for bad in ("a", "x" * 101, "   "):
        rejected = await client.get("/api/v1/users", params={"search": bad}, headers=admin_headers)
        assert rejected.status_code == 400

    admins = await client.get("/api/v1/users", params={"role": "admin"}, headers=admin_headers)
    assert [u["id"] for u in admins.json()["items"]] == [admin.id]


async def test_user_list_is_admin_only(client, create_user, auth_header_factory):
    user, password = await create_user()
    headers = await auth_header_factory(user, password)
    resp = await client.get("/api/v1/users", headers=headers)
    assert resp.status_code == 403
    assert resp.json()["error"] == "Access denied. Admin privileges required."

    assert (await client.get("/api/v1/users")).status_code == 401


async def test_get_user_self_or_admin(client, create_user, create_admin, auth_header_factory):
    user, password = await create_user()
    other, _ = await create_user()
    admin, admin_pw = await create_admin()
    headers = await auth_header_factory(user, password)

    assert (await client.get(f"/api/v1/users/{user.id}", headers=headers)).status_code == 200
    assert (await client.get(f"/api/v1/users/{other.id}", headers=headers)).status_code == 403

    admin_headers = await auth_header_factory(admin, admin_pw)
    resp = await client.get(f"/api/v1/users/{other.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["user"]["id"] == other.id

    missing = await client.get("/api/v1/users/" + "d" * 24, headers=admin_headers)
    assert missing.status_code == 404


async def test_update_user_role_requires_admin(client, create_user, create_admin, auth_header_factory):
    user, password = await create_user()
    headers = await auth_header_factory(user, password)

    own_profile = await client.put(f"/api/v1/users/{user.id}", json={"bio": "Just me"}, headers=headers)
    assert own_profile.status_code == 200
    assert own_profile.json()["user"]["profile"]["bio"] == "Just me"

    escalate = await client.put(f"/api/v1/users/{user.id}", json={"role": "admin"}, headers=headers)
    assert escalate.status_code == 403
    assert escalate.json()["error"] == "Only admins can change user roles"
    assert (await User.get(id=user.id)).role == "user"

    deactivate = await client.put(f"/api/v1/users/{user.id}", json={"isActive": False}, headers=headers)
    assert deactivate.status_code == 403

    admin, admin_pw = await create_admin()
    admin_headers = await auth_header_factory(admin, admin_pw)
    promote = await client.put(f"/api/v1/users/{user.id}", json={"role": "admin"}, headers=admin_headers)
    assert promote.status_code == 200
    assert promote.json()["user"]["role"] == "admin"


async def test_admin_cannot_demote_or_deactivate_self(client, create_admin, auth_header_factory):
    admin, admin_pw = await create_admin()
    headers = await auth_header_factory(admin, admin_pw)

    demote = await client.put(f"/api/v1/users/{admin.id}", json={"role": "user"}, headers=headers)
    assert demote.status_code == 400

    deactivate = await client.put(f"/api/v1/users/{admin.id}", json={"isActive": False}, headers=headers)
    assert deactivate.status_code == 400
    assert (await User.get(id=admin.id)).is_active is True


async def test_delete_user_cascades_posts(client, create_admin, create_user, create_category, auth_header_factory):
    admin, admin_pw = await create_admin()
    author, _ = await create_user()
    reader, _ = await create_user()
    category = await create_category()
    first = await make_post(author, category, "First post")
    await make_post(author, category, "Second post")
    await Comment.create(post=first, user=reader, content="Reader comment")
    other = await make_post(reader, category, "Reader post")
    await Comment.create(post=other, user=author, content="Author comment")

    admin_headers = await auth_header_factory(admin, admin_pw)
    resp = await client.delete(f"/api/v1/users/{author.id}", headers=admin_headers)
    assert resp.status_code == 200
    assert resp.json()["deletedPosts"] == 2

    assert not await User.filter(id=author.id).exists()
    assert await Post.filter(author_id=author.id).count() == 0
    assert await Post.filter(id=other.id).exists()

    after = await client.get(f"/api/v1/posts/author/{author.id}")
    assert after.status_code == 200
    assert after.json()["items"] == []
    assert after.json()["pagination"]["total"] == 0


async def test_delete_user_guards(client, create_admin, create_user, auth_header_factory):
    admin, admin_pw = await create_admin()
    user, password = await create_user()
    admin_headers = await auth_header_factory(admin, admin_pw)

    self_delete = await client.delete(f"/api/v1/users/{admin.id}", headers=admin_headers)
    assert self_delete.status_code == 400

    missing = await client.delete("/api/v1/users/" + "e" * 24, headers=admin_headers)
    assert missing.status_code == 404

    user_headers = await auth_header_factory(user, password)
    denied = await client.delete(f"/api/v1/users/{admin.id}", headers=user_headers)
    assert denied.status_code == 403
    assert await User.filter(id=admin.id).exists()


async def test_public_profile_and_stats(client, create_user, create_category, auth_header_factory):
    author, password = await create_user(first_name="Linus")
    fan, _ = await create_user()
    category = await create_category()
    published = await make_post(author, category, "Kernel notes", views=5)
    await make_post(author, category, "Work in progress", status="draft", views=3)
    await published.likes.add(fan)
    await Comment.create(post=published, user=fan, content="Great")

    profile = await client.get(f"/api/v1/users/{author.id}/profile")
    assert profile.status_code == 200
    body = profile.json()
    assert body["user"]["fullName"] == "Linus"
    assert [p["title"] for p in body["posts"]] == ["Kernel notes"]
    assert body["stats"] == {"totalPosts": 1, "totalViews": 5, "totalLikes": 1}

    headers = await auth_header_factory(author, password)
    stats = await client.get(f"/api/v1/users/{author.id}/stats", headers=headers)
    assert stats.status_code == 200
    assert stats.json()["stats"] == {
        "totalPosts": 2,
        "totalViews": 8,
        "totalLikes": 1,
        "totalComments": 1,
        "byStatus": {"draft": 1, "published": 1, "archived": 0},
    }

    own_posts = await client.get(f"/api/v1/users/{author.id}/posts", params={"status": "draft"}, headers=headers)
    assert [p["title"] for p in own_posts.json()["items"]] == ["Work in progress"]

    fan_view = await client.get(f"/api/v1/users/{fan.id}/stats", headers=headers)
    assert fan_view.status_code == 403
