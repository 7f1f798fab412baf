import re
import unittest

from projectshelf.models.project import Project
from projectshelf.services.slugs import slugify, unique_slug
from support import ApiTestCase


class SlugifyTests(unittest.TestCase):
    def test_examples(self):
        cases = {
            "My Demo!": "my-demo",
            "  Hello   World  ": "hello-world",
            "snake_case_title": "snake-case-title",
            "already-a-slug": "already-a-slug",
            "--Dashes -- everywhere--": "dashes-everywhere",
            "Café Menu": "caf-menu",
            "v2.0 Release": "v20-release",
            "!!!": "",
        }
        for title, expected in cases.items():
            self.assertEqual(slugify(title), expected, title)

    def test_output_alphabet_and_idempotence(self):
        for title in ("Ünïcødé Tïtle", "A  B__C--D", "100% Done?!", "-x-"):
            slug = slugify(title)
            self.assertRegex(slug, r"^[a-z0-9-]*$")
            self.assertFalse(slug.startswith("-") or slug.endswith("-"))
            self.assertNotIn("--", slug)
            self.assertEqual(slugify(slug), slug)


class UniqueSlugTests(ApiTestCase):
    def setUp(self):
        super().setUp()
        self.owner = self.register()["id"]
        self.db = self.session()

    def tearDown(self):
        self.db.close()
        super().tearDown()

    def add(self, slug):
        project = Project(user_id=self.owner, title=slug, slug=slug, overview="x")
        self.db.add(project)
        self.db.commit()
        return project

    def test_free_slug_is_used_as_is(self):
        self.assertEqual(unique_slug(self.db, "Fresh Idea"), "fresh-idea")

    def test_fills_next_free_suffix(self):
        self.add("demo")
        self.add("demo-2")
        self.add("demo-notes")
        self.assertEqual(unique_slug(self.db, "Demo"), "demo-3")

    def test_own_slug_is_not_a_collision(self):
        project = self.add("demo")
        self.assertEqual(unique_slug(self.db, "Demo", exclude_id=project.id), "demo")

    def test_empty_slug_falls_back(self):
        self.add("project")
        slug = unique_slug(self.db, "???")
        self.assertTrue(re.fullmatch(r"project-\d+", slug), slug)


if __name__ == "__main__":
    unittest.main()
