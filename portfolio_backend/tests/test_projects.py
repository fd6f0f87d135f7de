import unittest

from portfolio_backend import keys
from portfolio_backend.errors import Conflict, NotFound
from portfolio_backend.models import ProjectTool, new_project
from portfolio_backend.projects import ProjectsRepository
from portfolio_backend.store import InMemoryKeyValueStore


class ProjectsRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.repo = ProjectsRepository(self.store)

    def _create(self, title, status="Live", created_at="2024-01-01T00:00:00Z"):
        project = new_project(
            title,
            description=f"{title} description",
            status=status,
            tools=[ProjectTool("Python", "/skills-upload/python.svg")],
        )
        project.created_at = created_at
        return self.repo.create(project)

    def test_create_get_roundtrip(self):
        project = self._create("Portfolio Site")
        self.assertEqual(project.id, "project:portfolio-site")
        self.assertEqual(self.repo.get_by_id("portfolio-site"), project)
        self.assertEqual(self.repo.get_by_id(project.id).tools[0].skill, "Python")
        self.assertEqual(self.repo.get_statuses(), ["Live"])

    def test_duplicate_title_conflicts(self):
        self._create("Portfolio Site")
        with self.assertRaises(Conflict):
            self._create("Portfolio Site")

    def test_latest_and_popular(self):
        old = self._create("Old", created_at="2023-01-01T00:00:00Z")
        new = self._create("New", created_at="2024-06-01T00:00:00Z")
        self.repo.increment_views(old.id)
        self.repo.increment_views(old.id)

        self.assertEqual([p.id for p in self.repo.get_latest(1)], [new.id])
        self.assertEqual([p.id for p in self.repo.get_popular(2)], [old.id, new.id])
        self.assertEqual(self.repo.get_by_id(old.id).view_count, 2)
        self.assertEqual([p.id for p in self.repo.get_all()], [new.id, old.id])

    def test_partial_update_keeps_omitted_fields(self):
        project = self._create("Portfolio Site")
        updated = self.repo.update(project.id, {"description": "New words", "featured": True})

        self.assertEqual(updated.description, "New words")
        self.assertEqual(updated.title, "Portfolio Site")
        self.assertEqual(updated.tools, project.tools)
        self.assertTrue(updated.featured)
        self.assertEqual(updated.created_at, project.created_at)

    def test_status_change_moves_indexes(self):
        project = self._create("Portfolio Site", status="In Progress")
        self.repo.update(project.id, {"status": "Live"})

        self.assertEqual(self.repo.get_statuses(), ["Live"])
        self.assertEqual([p.id for p in self.repo.get_by_status("Live")], [project.id])
        self.assertEqual(self.repo.get_by_status("In Progress"), [])

    def test_delete_cleans_every_index(self):
        project = self._create("Portfolio Site")
        self.repo.delete(project.id)

        self.assertFalse(self.store.exists(project.id))
        self.assertEqual(self.repo.get_statuses(), [])
        self.assertEqual(self.store.zrevrange(keys.PROJECTS_BY_DATE, 0, -1), [])
        self.assertEqual(self.store.zrevrange(keys.PROJECTS_BY_VIEWS, 0, -1), [])
        self.assertEqual(self.repo.get_projects_response(), {"count": 0, "projects": []})
        with self.assertRaises(NotFound):
            self.repo.delete(project.id)

    def test_grouped_by_status(self):
        self._create("Shop", status="Live")
        self._create("Lib", status="Github")
        grouped = self.repo.get_by_status_grouped()
        self.assertEqual([p["title"] for p in grouped["live"]], ["Shop"])
        self.assertEqual([p["title"] for p in grouped["github"]], ["Lib"])
        self.assertEqual(grouped["in_progress"], [])

    def test_delete_all(self):
        self._create("Shop")
        self._create("Lib", status="Github")
        self.assertEqual(self.repo.delete_all(), 2)
        self.assertEqual(self.repo.get_all(), [])
        self.assertEqual(self.repo.get_statuses(), [])


if __name__ == "__main__":
    unittest.main()
