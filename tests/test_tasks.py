from datetime import datetime, timedelta

import pytest

from teamdesk.models import Role, TaskStatus


def due(days=5):
    return (datetime.utcnow() + timedelta(days=days)).isoformat()


@pytest.fixture()
def crew(make_team, make_user):
    """A team with a task-managing leader, a member and an outsider leader"""
    team = make_team()
    other_team = make_team()
    return {
        "team": team,
        "other_team": other_team,
        "leader": make_user(role=Role.TEAM_LEADER, team=team, can_manage_tasks=True),
        "member": make_user(role=Role.TEAM_MEMBER, team=team),
        "outsider": make_user(role=Role.TEAM_MEMBER, team=other_team),
        "other_leader": make_user(role=Role.TEAM_LEADER, team=other_team, can_manage_tasks=True),
    }


def test_team_workflow_scenario(client, admin, make_user, headers):
    # Admin builds the team
    leader = make_user(role=Role.USER)
    member = make_user(role=Role.USER)
    created = client.post("/api/teams/", headers=headers(admin), json={
        "name": "Scenario Team", "member_ids": [member.id], "team_leader_id": leader.id,
    })
    assert created.status_code == 201
    team_id = created.json()["id"]

    granted = client.put(f"/api/users/toggle-task-permission/{leader.id}", headers=headers(admin))
    assert granted.json()["user"]["can_manage_tasks"] is True

    # Leader creates a task in the team
    task = client.post("/api/tasks/", headers=headers(leader), json={
        "title": "Write report", "team_id": team_id, "due_date": due(),
    })
    assert task.status_code == 201
    task_id = task.json()["id"]
    assert task.json()["permissions"]["can_delete"] is True

    # Member is read-only
    assert client.delete(f"/api/tasks/{task_id}", headers=headers(member)).status_code == 403
    member_view = client.get(f"/api/tasks/{task_id}", headers=headers(member)).json()
    assert member_view["permissions"]["can_edit"] is False

    # Leader completes it
    updated = client.put(f"/api/tasks/{task_id}", headers=headers(leader), json={"status": "completed"})
    assert updated.status_code == 200
    assert updated.json()["status"] == "completed"
    assert updated.json()["completed_at"] is not None


def test_leader_without_flag_cannot_create_or_assign(client, crew, make_user, make_task, headers):
    team = crew["team"]
    leader = make_user(role=Role.TEAM_LEADER, team=team, can_manage_tasks=False)
    task = make_task(team)

    create = client.post("/api/tasks/", headers=headers(leader), json={
        "title": "Nope", "team_id": team.id, "due_date": due(),
    })
    assign = client.put(f"/api/tasks/assign/{task.id}/to/{crew['member'].id}", headers=headers(leader))

    assert create.status_code == 403
    assert "permission to manage tasks" in create.json()["detail"]
    assert assign.status_code == 403


def test_leader_cannot_write_tasks_of_other_team(client, crew, make_task, headers):
    foreign = make_task(crew["other_team"])

    create = client.post("/api/tasks/", headers=headers(crew["leader"]), json={
        "title": "Sneaky", "team_id": crew["other_team"].id, "due_date": due(),
    })
    update = client.put(f"/api/tasks/{foreign.id}", headers=headers(crew["leader"]), json={"title": "x"})
    delete = client.delete(f"/api/tasks/{foreign.id}", headers=headers(crew["leader"]))

    assert (create.status_code, update.status_code, delete.status_code) == (403, 403, 403)


def test_leader_can_view_tasks_of_any_team(client, crew, make_task, headers):
    foreign = make_task(crew["other_team"])
    response = client.get(f"/api/tasks/{foreign.id}", headers=headers(crew["leader"]))

    assert response.status_code == 200
    assert response.json()["permissions"]["is_own_team"] is False
    assert response.json()["permissions"]["can_edit"] is False


def test_members_and_users_cannot_write_tasks(client, crew, make_user, make_task, headers):
    task = make_task(crew["team"])
    plain = make_user(role=Role.USER)
    for actor in (crew["member"], plain):
        assert client.post("/api/tasks/", headers=headers(actor), json={
            "title": "t", "team_id": crew["team"].id, "due_date": due(),
        }).status_code == 403
        assert client.put(f"/api/tasks/{task.id}", headers=headers(actor), json={"title": "t"}).status_code == 403


def test_assign_task_to_team_member(client, crew, make_task, headers):
    task = make_task(crew["team"])

    response = client.put(f"/api/tasks/assign/{task.id}/to/{crew['member'].id}", headers=headers(crew["leader"]))

    assert response.status_code == 200
    assert response.json()["assigned_to"] == crew["member"].id
    assert response.json()["assignee"]["id"] == crew["member"].id
    assert response.json()["status"] == "in_progress"


def test_assign_to_non_member_is_404(client, crew, make_task, headers):
    task = make_task(crew["team"])
    response = client.put(f"/api/tasks/assign/{task.id}/to/{crew['outsider'].id}", headers=headers(crew["leader"]))
    assert response.status_code == 404


def test_assign_missing_task_or_deleted_user_is_404(client, crew, make_user, make_task, headers):
    task = make_task(crew["team"])
    ghost = make_user(role=Role.TEAM_MEMBER, team=crew["team"], is_deleted=True)

    assert client.put(f"/api/tasks/assign/9999/to/{crew['member'].id}",
                      headers=headers(crew["leader"])).status_code == 404
    assert client.put(f"/api/tasks/assign/{task.id}/to/{ghost.id}",
                      headers=headers(crew["leader"])).status_code == 404


def test_create_rejects_assignee_outside_team(client, crew, headers):
    response = client.post("/api/tasks/", headers=headers(crew["leader"]), json={
        "title": "t", "team_id": crew["team"].id, "due_date": due(), "assigned_to": crew["outsider"].id,
    })
    assert response.status_code == 404


def test_create_requires_team_and_due_date(client, admin, crew, headers):
    no_team = client.post("/api/tasks/", headers=headers(admin), json={"title": "t", "due_date": due()})
    no_due = client.post("/api/tasks/", headers=headers(admin), json={"title": "t", "team_id": crew["team"].id})

    assert no_team.status_code == 400
    assert no_due.status_code == 400


def test_task_inherits_team_from_project(client, admin, crew, make_project, headers):
    project = make_project(crew["team"])

    ok = client.post("/api/tasks/", headers=headers(admin), json={
        "title": "t", "project_id": project.id, "due_date": due(),
    })
    mismatch = client.post("/api/tasks/", headers=headers(admin), json={
        "title": "t", "project_id": project.id, "team_id": crew["other_team"].id, "due_date": due(),
    })

    assert ok.status_code == 201
    assert ok.json()["team_id"] == crew["team"].id
    assert ok.json()["project"]["id"] == project.id
    assert mismatch.status_code == 400


def test_completed_at_follows_status(client, crew, make_task, headers):
    task = make_task(crew["team"])
    url = f"/api/tasks/{task.id}"

    done = client.put(url, headers=headers(crew["leader"]), json={"status": "completed"}).json()
    reopened = client.put(url, headers=headers(crew["leader"]), json={"status": "in_progress"}).json()

    assert done["completed_at"] is not None
    assert reopened["completed_at"] is None


def test_unassigned_listings(client, crew, make_project, make_task, headers):
    project = make_project(crew["team"])
    open_task = make_task(crew["team"], project=project)
    make_task(crew["team"], project=project, assignee=crew["member"])
    loose_task = make_task(crew["team"])
    make_task(crew["other_team"])

    by_team = client.get(f"/api/tasks/team/{crew['team'].id}/unassigned", headers=headers(crew["member"])).json()
    by_project = client.get(f"/api/tasks/project/{project.id}/unassigned", headers=headers(crew["member"])).json()

    assert [t["id"] for t in by_team] == [open_task.id, loose_task.id]
    assert [t["id"] for t in by_project] == [open_task.id]


def test_task_filters(client, crew, make_project, make_task, headers):
    project = make_project(crew["team"])
    done = make_task(crew["team"], project=project, assignee=crew["member"], status=TaskStatus.COMPLETED)
    make_task(crew["team"], project=project, assignee=crew["member"])
    make_task(crew["other_team"])
    h = headers(crew["member"])

    assert len(client.get("/api/tasks/", headers=h).json()) == 3
    assert [t["id"] for t in client.get("/api/tasks/?status=completed", headers=h).json()] == [done.id]
    assert len(client.get(f"/api/tasks/team/{crew['team'].id}", headers=h).json()) == 2
    assert len(client.get(f"/api/tasks/project/{project.id}?status=pending", headers=h).json()) == 1
    assert len(client.get(f"/api/tasks/user/{crew['member'].id}", headers=h).json()) == 2
    assert client.get("/api/tasks/project/9999", headers=h).status_code == 404


def test_admin_can_delete_task(client, admin, crew, make_task, headers):
    task = make_task(crew["team"])
    assert client.delete(f"/api/tasks/{task.id}", headers=headers(admin)).status_code == 200
    assert client.get(f"/api/tasks/{task.id}", headers=headers(admin)).status_code == 404


def test_update_rejects_null_required_fields(client, crew, make_task, headers):
    task = make_task(crew["team"])
    h = headers(crew["leader"])

    for field in ("title", "status", "priority", "due_date", "estimated_hours", "tags"):
        response = client.put(f"/api/tasks/{task.id}", headers=h, json={field: None})
        assert response.status_code == 400, field

    assert client.put(f"/api/tasks/{task.id}", headers=h, json={"assigned_to": None}).status_code == 200


def test_moving_task_to_other_team_drops_foreign_assignee(client, admin, crew, make_project, make_task, headers):
    task = make_task(crew["team"], assignee=crew["member"])
    project = make_project(crew["other_team"])

    response = client.put(f"/api/tasks/{task.id}", headers=headers(admin), json={"project_id": project.id})

    assert response.status_code == 200
    assert response.json()["team_id"] == crew["other_team"].id
    assert response.json()["assigned_to"] is None


def test_member_moved_to_another_team_cannot_be_assigned_old_work(client, db, admin, crew, make_task, headers):
    task = make_task(crew["team"])
    member = crew["member"]

    moved = client.post(f"/api/teams/{crew['other_team'].id}/members", headers=headers(admin),
                        json={"user_id": member.id})
    assert moved.status_code == 200

    old_team = client.get(f"/api/teams/{crew['team'].id}", headers=headers(admin)).json()
    assert member.id not in {m["user_id"] for m in old_team["members"]}

    response = client.put(f"/api/tasks/assign/{task.id}/to/{member.id}", headers=headers(crew["leader"]))
    assert response.status_code == 404
