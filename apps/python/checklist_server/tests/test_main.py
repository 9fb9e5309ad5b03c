from fastapi.testclient import TestClient

from checklist_server.main import create_app
from task_tree import TaskTreeError


def test_health_and_routes_are_wired():
    app = create_app()
    client = TestClient(app)

    assert client.get("/health").json() == {"status": "ok"}
    paths = {route.path for route in app.routes}
    assert "/teams/{team_id}/tasks/{task_id}/move" in paths
    assert "/teams/{team_id}/tasks/{task_id}/completion" in paths
    assert TaskTreeError in app.exception_handlers
