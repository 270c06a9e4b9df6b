import tempfile
import unittest
from pathlib import Path

from fastapi.testclient import TestClient

from conftest import FakeGenerator, FakeSuggester
from fitplan.api.api_run import create_app
from fitplan.domain.Candidate import GeneratedPlanCandidate, LineItem
from fitplan.infra.Local_Cache import LocalCache
from fitplan.infra.paths import SEED_FILE
from fitplan.logic.session import PlanSession
from fitplan.utilities.errors import TransportFailure


def hiit_candidate():
    return GeneratedPlanCandidate(
        "workout", "30 Minute Beginner HIIT", "Intervals.", "HIIT",
        [LineItem("Jumping Jacks", "30 seconds"), LineItem("Squats", "12 reps"), LineItem("Burpees", "8 reps"),
         LineItem("High Knees", "30 seconds"), LineItem("Plank", "45 seconds")],
        {"duration": "30 minutes", "difficulty": "Beginner"},
    )


class TestPlansAPI(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.addCleanup(self.tmp.cleanup)
        self.generator = FakeGenerator()
        self.suggester = FakeSuggester()
        self.session = PlanSession(
            LocalCache(Path(self.tmp.name) / "cache.json"),
            {"workout": self.generator, "diet": FakeGenerator(TransportFailure("service down"))},
            seed_file=SEED_FILE,
            suggester=self.suggester,
        )
        self.client = TestClient(create_app(self.session))
        self.client.__enter__()
        self.addCleanup(self.client.__exit__, None, None, None)

    def test_list_plans(self):
        resp = self.client.get('/api/plans/workouts')
        self.assertEqual(resp.status_code, 200)
        data = resp.json()
        self.assertFalse(data['loading'])
        self.assertEqual([p['id'] for p in data['plans']], ['plan1', 'plan2', 'plan3', 'plan4'])
        self.assertFalse(data['plans'][0]['favorite'])

    def test_unknown_kind(self):
        self.assertEqual(self.client.get('/api/plans/yoga').status_code, 404)

    def test_add_update_delete(self):
        resp = self.client.post('/api/plans/workout', json={
            'name': 'Leg Day', 'category': 'strength', 'instructions': ['Squats', '  '],
            'difficulty': 'Beginner',
        })
        self.assertEqual(resp.status_code, 200, resp.text)
        plan = resp.json()['plan']
        self.assertIn('Leg%20Day', plan['imageUrl'])
        self.assertEqual(plan['instructions'], ['Squats'])

        resp = self.client.patch(f"/api/plans/workout/{plan['id']}", json={'duration': '40 minutes'})
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['plan']['duration'], '40 minutes')
        self.assertEqual(resp.json()['plan']['name'], 'Leg Day')

        self.assertEqual(self.client.delete(f"/api/plans/workout/{plan['id']}").status_code, 200)
        self.assertEqual(self.client.delete(f"/api/plans/workout/{plan['id']}").status_code, 200)
        self.assertEqual(self.client.get(f"/api/plans/workout/{plan['id']}").status_code, 404)

    def test_add_rejects_other_kind_fields(self):
        resp = self.client.post('/api/plans/workout', json={
            'name': 'Leg Day', 'category': 'strength', 'instructions': ['Squats'], 'protein': '100g',
        })
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(resp.json()['kind'], 'validation')

    def test_update_missing_plan(self):
        resp = self.client.patch('/api/plans/diet/nope', json={'protein': '100g'})
        self.assertEqual(resp.status_code, 404)
        self.assertEqual(resp.json()['kind'], 'not_found')

    def test_favorites(self):
        resp = self.client.post('/api/plans/diets/diet2/favorite')
        self.assertEqual(resp.json(), {'planId': 'diet2', 'favorite': True})
        data = self.client.get('/api/plans/diets/favorites').json()
        self.assertEqual(data['ids'], ['diet2'])
        self.assertEqual(data['plans'][0]['name'], 'Vegan Weight Management')
        self.assertTrue(self.client.get('/api/plans/diet/diet2').json()['favorite'])

        self.client.delete('/api/plans/diet/diet2')
        self.assertEqual(self.client.get('/api/plans/diets/favorites').json()['ids'], [])

    def test_categories(self):
        names = [c['name'] for c in self.client.get('/api/plans/diet/categories').json()['categories']]
        self.assertIn('Ketogenic', names)

    def test_generate_review_and_commit(self):
        self.generator.candidates.append(hiit_candidate())
        resp = self.client.post('/api/ai/workout/generate', json={'prompt': '30 min beginner HIIT'})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()['editor']['included'], [0, 1, 2, 3, 4])

        self.assertFalse(self.client.post('/api/ai/workout/candidate/1/toggle').json()['included'])
        self.assertFalse(self.client.post('/api/ai/workout/candidate/2/toggle').json()['included'])
        self.assertEqual(self.client.post('/api/ai/workout/candidate/9/toggle').status_code, 422)

        resp = self.client.post('/api/ai/workout/candidate/commit')
        self.assertEqual(resp.status_code, 200, resp.text)
        plan = resp.json()['plan']
        self.assertEqual(len(plan['instructions']), 3)
        self.assertEqual(plan['category'], 'hiit')
        self.assertIsNone(self.client.get('/api/ai/workout/candidate').json()['candidate'])

    def test_commit_without_candidate(self):
        resp = self.client.post('/api/ai/workout/candidate/commit')
        self.assertEqual(resp.status_code, 422)

    def test_generate_empty_prompt(self):
        resp = self.client.post('/api/ai/workout/generate', json={'prompt': ''})
        self.assertEqual(resp.status_code, 422)
        self.assertEqual(self.generator.calls, [])

    def test_generate_transport_failure(self):
        resp = self.client.post('/api/ai/diet/generate', json={'prompt': 'vegan week'})
        self.assertEqual(resp.status_code, 503)
        events = self.client.get('/api/events').json()['events']
        self.assertEqual(events[-1]['type'], 'generation.failed')

    def test_edit_existing_plan(self):
        resp = self.client.post('/api/ai/workout/edit/plan3')
        self.assertEqual(resp.status_code, 200)
        self.assertEqual(resp.json()['targetPlanId'], 'plan3')
        self.assertEqual(self.client.post('/api/ai/workout/edit/missing').status_code, 404)

    def test_generate_with_detected_type(self):
        self.suggester.plans.append(GeneratedPlanCandidate(
            "diet", "Keto Kickstart", "Low carb.", "Ketogenic", [LineItem("Breakfast: Eggs")], {"fat": "70%"}))
        resp = self.client.post('/api/ai/generate', json={'prompt': 'keto meals'})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(resp.json()['kind'], 'diet')
        self.assertEqual(resp.json()['editor']['included'], [0])

        plan = self.client.post('/api/ai/diet/candidate/commit').json()['plan']
        self.assertEqual(plan['category'], 'keto')
        self.assertEqual(plan['fat'], '70%')

    def test_suggestions_bulk_add(self):
        self.suggester.suggestions.append([hiit_candidate(), hiit_candidate(), hiit_candidate()])
        resp = self.client.post('/api/ai/suggestions', json={'prompt': 'hiit ideas'})
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(len(resp.json()['suggestions']['suggestions']), 3)

        self.assertEqual(self.client.post('/api/ai/suggestions/commit').status_code, 422)
        self.assertTrue(self.client.post('/api/ai/suggestions/0/toggle').json()['selected'])
        self.assertTrue(self.client.post('/api/ai/suggestions/2/toggle').json()['selected'])
        self.assertEqual(self.client.post('/api/ai/suggestions/7/toggle').status_code, 422)

        resp = self.client.post('/api/ai/suggestions/commit')
        self.assertEqual(resp.status_code, 200, resp.text)
        self.assertEqual(len(resp.json()['plans']), 2)
        self.assertEqual(len(self.client.get('/api/plans/workouts').json()['plans']), 6)
        self.assertEqual(self.client.get('/api/ai/suggestions').json()['selected'], [])

        editor = self.client.post('/api/ai/suggestions/1/review').json()
        self.assertEqual(editor['kind'], 'workout')
        self.assertEqual(editor['included'], [0, 1, 2, 3, 4])

        self.client.delete('/api/ai/suggestions')
        self.assertEqual(self.client.get('/api/ai/suggestions').json()['suggestions'], [])

    def test_suggestions_without_prompt(self):
        self.assertEqual(self.client.post('/api/ai/suggestions', json={'prompt': ' '}).status_code, 422)
        self.assertEqual(self.suggester.calls, [])

    def test_session_login_logout(self):
        self.client.post('/api/plans/workout/plan1/favorite')
        resp = self.client.post('/api/session/login', json={'id': 'u1', 'email': 'u1@example.com'})
        self.assertEqual(resp.json()['user']['name'], 'Fitness Enthusiast')
        self.assertEqual(self.client.get('/api/plans/workout/favorites').json()['ids'], [])
        self.assertEqual(self.client.post('/api/session/login', json={'id': 'u2', 'email': 'bad'}).status_code, 422)

        self.client.post('/api/session/logout')
        self.assertIsNone(self.client.get('/api/session').json()['user'])
        self.assertEqual(self.client.get('/api/plans/workout/favorites').json()['ids'], ['plan1'])


if __name__ == '__main__':
    unittest.main()
