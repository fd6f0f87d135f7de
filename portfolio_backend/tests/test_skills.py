import unittest

from portfolio_backend import keys
from portfolio_backend.errors import Conflict, NotFound
from portfolio_backend.models import new_skill
from portfolio_backend.skills import SkillsRepository
from portfolio_backend.store import InMemoryKeyValueStore


class SkillsRepositoryTests(unittest.TestCase):
    def setUp(self):
        self.store = InMemoryKeyValueStore()
        self.repo = SkillsRepository(self.store)

    def test_create_and_get_by_category(self):
        skill = self.repo.create(new_skill("Languages", "Rust", "/skills-upload/rust.svg"))
        self.assertEqual(skill.id, "skill:Languages:Rust")

        fetched = self.repo.get_by_id(skill.id)
        self.assertEqual(fetched, skill)
        self.assertEqual([s.skill for s in self.repo.get_by_category("Languages")], ["Rust"])
        self.assertEqual(self.repo.get_categories(), ["Languages"])
        self.assertEqual(self.repo.get_by_category("Frameworks"), [])
        self.assertEqual(self.repo.get_by_name("rust"), [skill])

    def test_create_duplicate_conflicts(self):
        self.repo.create(new_skill("Languages", "Rust"))
        with self.assertRaises(Conflict):
            self.repo.create(new_skill("Languages", "Rust"))

    def test_delete_prunes_empty_category(self):
        skill = self.repo.create(new_skill("Languages", "Rust"))
        self.repo.delete(skill.id)

        self.assertEqual(self.repo.get_categories(), [])
        self.assertEqual(self.repo.get_all(), [])
        self.assertFalse(self.store.exists(keys.skills_by_category("Languages")))
        with self.assertRaises(NotFound):
            self.repo.get_by_id(skill.id)

    def test_update_moves_between_categories(self):
        self.repo.create(new_skill("Languages", "Go"))
        skill = self.repo.create(new_skill("Languages", "Rust"))

        updated = self.repo.update(skill.id, {"category": "Systems"})

        self.assertEqual(updated.id, "skill:Systems:Rust")
        self.assertFalse(self.store.exists("skill:Languages:Rust"))
        self.assertEqual([s.skill for s in self.repo.get_by_category("Languages")], ["Go"])
        self.assertEqual([s.skill for s in self.repo.get_by_category("Systems")], ["Rust"])
        self.assertEqual(self.repo.get_categories(), ["Languages", "Systems"])

    def test_update_keeps_icon_when_not_given(self):
        skill = self.repo.create(new_skill("Tools", "Docker", "/skills-upload/docker.svg"))
        updated = self.repo.update(skill.id, {})
        self.assertEqual(updated.icon, "/skills-upload/docker.svg")
        self.assertEqual(updated.created_at, skill.created_at)

    def test_update_into_existing_identity_conflicts(self):
        self.repo.create(new_skill("Languages", "Rust"))
        other = self.repo.create(new_skill("Systems", "Rust"))
        with self.assertRaises(Conflict):
            self.repo.update(other.id, {"category": "Languages"})

    def test_create_many_upserts(self):
        self.repo.create(new_skill("Languages", "Rust", "old.svg"))
        stored = self.repo.create_many(
            [new_skill("Languages", "Rust", "new.svg"), new_skill("Tools", "Git")]
        )
        self.assertEqual(len(stored), 2)
        self.assertEqual(self.repo.get_by_id("skill:Languages:Rust").icon, "new.svg")
        self.assertEqual(len(self.repo.get_all()), 2)

    def test_delete_all(self):
        self.repo.create(new_skill("Languages", "Rust"))
        self.repo.create(new_skill("Tools", "Git"))
        self.assertEqual(self.repo.delete_all(), 2)
        self.assertEqual(self.repo.get_all(), [])
        self.assertEqual(self.repo.get_categories(), [])
        self.assertEqual(self.repo.get_by_name("git"), [])

    def test_skills_response_shape(self):
        self.repo.create(new_skill("Languages", "Rust"))
        body = self.repo.get_skills_response()
        self.assertEqual(body["categories"], ["Languages"])
        self.assertEqual(body["skills"][0]["skill"], "Rust")


if __name__ == "__main__":
    unittest.main()
