from teamdesk.models import Role, TaskStatus


def test_admin_stats(client, admin, make_team, make_user, make_task, make_equipment, headers):
    team = make_team()
    member = make_user(role=Role.TEAM_MEMBER, team=team)
    make_user(is_deleted=True)
    make_task(team, assignee=member, status=TaskStatus.COMPLETED)
    make_task(team)
    make_equipment(assignee=member)
    make_equipment()

    body = client.get("/api/stats/admin", headers=headers(admin)).json()

    assert body["users"]["admins"] == 1
    assert body["users"]["team_members"] == 1
    assert body["users"]["deleted"] == 1
    assert body["tasks"]["total"] == 2
    assert body["tasks"]["completion_rate"] == 50.0
    assert body["tasks"]["timeline"][-1]["count"] == 1
    assert body["equipment"]["utilization_rate"] == 50.0
    assert body["teams"]["performance"][0]["completed_tasks"] == 1
    assert body["top_performers"][0]["user_id"] == member.id


def test_admin_stats_requires_admin(client, make_user, headers):
    assert client.get("/api/stats/admin", headers=headers(make_user(role=Role.TEAM_LEADER))).status_code == 403


def test_team_stats_for_members_only(client, make_team, make_user, make_task, headers):
    team = make_team()
    member = make_user(role=Role.TEAM_MEMBER, team=team)
    outsider = make_user(role=Role.TEAM_MEMBER, team=make_team())
    make_task(team, assignee=member)
    make_task(team)

    own = client.get(f"/api/stats/team/{team.id}", headers=headers(member))
    other = client.get(f"/api/stats/team/{team.id}", headers=headers(outsider))

    assert own.status_code == 200
    assert own.json()["team"]["member_count"] == 1
    assert own.json()["tasks"]["pending"] == 2
    names = {row["user_name"] for row in own.json()["member_performance"]}
    assert "Unassigned" in names
    assert other.status_code == 403
