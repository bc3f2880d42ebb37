from teamdesk.models import Equipment, Role, TeamMember, User


def test_create_team_sets_roles_and_membership(client, db, admin, make_user, headers):
    leader = make_user()
    member = make_user()

    response = client.post("/api/teams/", headers=headers(admin), json={
        "name": "Core", "description": "Core team", "member_ids": [member.id], "team_leader_id": leader.id,
    })

    assert response.status_code == 201
    body = response.json()
    roles = {m["user_id"]: m["role"] for m in body["members"]}
    assert roles == {member.id: "Member", leader.id: "Leader"}

    db.refresh(leader)
    db.refresh(member)
    assert (leader.role, leader.team_id) == (Role.TEAM_LEADER, body["id"])
    assert (member.role, member.team_id) == (Role.TEAM_MEMBER, body["id"])


def test_create_team_with_unknown_member_is_400(client, admin, headers):
    response = client.post("/api/teams/", headers=headers(admin), json={"name": "Ghosts", "member_ids": [4242]})
    assert response.status_code == 400


def test_team_writes_are_admin_only(client, make_team, make_user, headers):
    team = make_team()
    leader = make_user(role=Role.TEAM_LEADER, team=team, can_manage_tasks=True)
    h = headers(leader)

    assert client.post("/api/teams/", headers=h, json={"name": "Mine"}).status_code == 403
    assert client.put(f"/api/teams/{team.id}", headers=h, json={"name": "Renamed"}).status_code == 403
    assert client.delete(f"/api/teams/{team.id}", headers=h).status_code == 403
    assert client.get(f"/api/teams/{team.id}", headers=h).status_code == 200


def test_add_and_remove_member(client, db, admin, make_team, make_user, headers):
    team = make_team()
    user = make_user()

    added = client.post(f"/api/teams/{team.id}/members", headers=headers(admin), json={"user_id": user.id})
    again = client.post(f"/api/teams/{team.id}/members", headers=headers(admin), json={"user_id": user.id})

    assert added.status_code == 200
    assert again.status_code == 409

    removed = client.delete(f"/api/teams/{team.id}/members/{user.id}", headers=headers(admin))
    assert removed.status_code == 200
    db.refresh(user)
    assert user.team_id is None
    assert db.query(TeamMember).filter(TeamMember.user_id == user.id).count() == 0
    assert client.delete(f"/api/teams/{team.id}/members/{user.id}", headers=headers(admin)).status_code == 404


def test_promote_demotes_previous_leader(client, db, admin, make_team, make_user, headers):
    team = make_team()
    old_leader = make_user(role=Role.TEAM_LEADER, team=team, can_manage_tasks=True)
    member = make_user(role=Role.TEAM_MEMBER, team=team)

    response = client.put(f"/api/teams/{team.id}/promote/{member.id}", headers=headers(admin))

    assert response.status_code == 200
    db.refresh(old_leader)
    db.refresh(member)
    assert member.role == Role.TEAM_LEADER
    assert old_leader.role == Role.TEAM_MEMBER
    assert old_leader.can_manage_tasks is False


def test_delete_team_with_work_is_409(client, admin, make_team, make_task, headers):
    team = make_team()
    make_task(team)
    assert client.delete(f"/api/teams/{team.id}", headers=headers(admin)).status_code == 409


def test_delete_empty_team_releases_users_and_equipment(client, db, admin, make_team, make_user, make_equipment,
                                                        headers):
    team = make_team()
    team_id = team.id
    user_id = make_user(role=Role.TEAM_MEMBER, team=team).id
    equipment_id = make_equipment(team=team).id

    response = client.delete(f"/api/teams/{team_id}", headers=headers(admin))

    assert response.status_code == 200
    db.expire_all()
    assert db.get(User, user_id).team_id is None
    assert db.get(Equipment, equipment_id).team_id is None
    assert client.get(f"/api/teams/{team_id}", headers=headers(admin)).status_code == 404


def test_removed_leader_loses_leadership(client, db, admin, make_team, make_user, headers):
    team = make_team()
    leader = make_user(role=Role.TEAM_LEADER, team=team, can_manage_tasks=True)

    response = client.delete(f"/api/teams/{team.id}/members/{leader.id}", headers=headers(admin))

    assert response.status_code == 200
    db.refresh(leader)
    assert (leader.role, leader.can_manage_tasks, leader.team_id) == (Role.TEAM_MEMBER, False, None)


def test_user_belongs_to_one_team_at_a_time(client, db, admin, make_team, make_user, headers):
    first = make_team()
    second = make_team()
    user = make_user(role=Role.TEAM_MEMBER, team=first)

    response = client.put(f"/api/users/{user.id}", headers=headers(admin), json={"team_id": second.id})

    assert response.status_code == 200
    assert db.query(TeamMember).filter(TeamMember.user_id == user.id, TeamMember.team_id == first.id).count() == 0
