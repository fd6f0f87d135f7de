import unittest

from portfolio_backend import keys
from portfolio_backend.blog import BlogRepository
from portfolio_backend.errors import Conflict
from portfolio_backend.models import new_blog_post
from portfolio_backend.store import InMemoryKeyValueStore


class BlogRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.repo = BlogRepository(self.store)

    def _create(self, title, tags=("go",), published=True, published_at="2024-01-01T00:00:00Z"):
        post = new_blog_post(title, f"{title} body " * 30, "Author", list(tags))
        post.published = published
        post.published_at = published_at
        return self.repo.create(post)

    def test_new_post_derives_fields(self):
        post = new_blog_post("Modern CSS Techniques", "word " * 450, "Author")
        self.assertEqual(post.slug, "modern-css-techniques")
        self.assertEqual(post.id, "blog:modern-css-techniques")
        self.assertEqual(post.reading_time, "2 min read")
        self.assertTrue(post.excerpt.endswith("..."))
        self.assertEqual(len(post.excerpt), 153)
        self.assertFalse(post.published)

    def test_create_conflicts_on_slug(self):
        self._create("Hello World")
        with self.assertRaises(Conflict):
            self._create("Hello World")

    def test_published_filters(self):
        visible = self._create("Visible", published_at="2024-02-01T00:00:00Z")
        self._create("Draft", published=False, published_at="2024-03-01T00:00:00Z")

        self.assertEqual([p.id for p in self.repo.get_published()], [visible.id])
        self.assertEqual(len(self.repo.get_all()), 2)
        self.assertEqual([p.id for p in self.repo.get_latest(1, published_only=True)], [visible.id])
        self.assertEqual(self.repo.get_latest(1)[0].slug, "draft")
        self.assertEqual([p.id for p in self.repo.get_by_tag("go", published_only=True)], [visible.id])

    def test_update_moves_tags_and_prunes(self):
        post = self._create("Tagged", tags=["go", "redis"])
        updated = self.repo.update(post.id, {"tags": ["python"], "published": True, "featured": False})

        self.assertEqual(updated.tags, ["python"])
        self.assertEqual(self.repo.get_tags(), ["python"])
        self.assertEqual(self.repo.get_by_tag("go"), [])
        self.assertFalse(self.store.exists(keys.blog_by_tag("redis")))

    def test_unpublish_removes_from_published_index(self):
        post = self._create("Tagged")
        self.repo.update(post.id, {"published": False, "featured": False})
        self.assertEqual(self.repo.get_published(), [])

    def test_popular_counts_views(self):
        first = self._create("First")
        second = self._create("Second")
        self.repo.increment_views(second.id)
        self.assertEqual([p.id for p in self.repo.get_popular(2, published_only=True)], [second.id, first.id])
        self.assertEqual(self.repo.get_by_slug("second").view_count, 1)

    def test_featured(self):
        post = self._create("Spotlight")
        self._create("Plain")
        self.repo.update(post.id, {"featured": True, "published": True})
        self.assertEqual([p.id for p in self.repo.get_featured()], [post.id])

    def test_delete_prunes_tags(self):
        post = self._create("Gone", tags=["rust"])
        self.repo.delete(post.id)
        self.assertEqual(self.repo.get_tags(), [])
        self.assertIsNone(self.repo.find_by_slug("gone"))

    def test_page(self):
        for day in range(1, 6):
            self._create(f"Post {day}", published_at=f"2024-01-0{day}T00:00:00Z")
        body = BlogRepository.page(self.repo.get_published(), page=2, limit=2)

        self.assertEqual(body["total"], 5)
        self.assertEqual(body["page"], 2)
        self.assertEqual(body["limit"], 2)
        self.assertEqual([p["slug"] for p in body["posts"]], ["post-3", "post-2"])
        self.assertNotIn("content", body["posts"][0])

    def test_create_many_replaces_existing(self):
        self._create("Migrated", tags=["old"])
        post = new_blog_post("Migrated", "fresh body", "Author", ["new"])
        self.repo.create_many([post])
        self.assertEqual(self.repo.get_tags(), ["new"])
        self.assertEqual(self.repo.get_by_slug("migrated").content, "fresh body")


if __name__ == "__main__":
    unittest.main()
