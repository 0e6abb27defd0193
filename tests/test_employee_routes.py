"""HTTP tests for the employee views, forms and JSON listing."""

import re
from datetime import date

import pytest

from src.db import repositories as repo
from src.db.repositories import ConcurrencyConflictError


def _names_in(html: str) -> list[str]:
    return re.findall(r"<td>(Alice\d)</td>", html)


async def _create(db_session, lookups, first_name="Amina", last_name="Benali"):
    department, plan = lookups
    return await repo.create_employee(
        db_session,
        first_name=first_name,
        last_name=last_name,
        hire_date=date(2018, 3, 12),
        department_id=department.id,
        benefits_id=plan.id,
    )


def _form(csrf_token, lookups, **overrides):
    department, plan = lookups
    data = {
        "csrf_token": csrf_token,
        "first_name": "Karim",
        "last_name": "Haddad",
        "hire_date": "2019-07-01",
        "department_id": str(department.id),
        "benefits_id": str(plan.id),
    }
    data.update(overrides)
    return data


# ── Index ──────────────────────────────────────────────────────────


class TestIndex:

    async def test_first_page_sorted_by_last_name(self, client, alice_employees):
        response = await client.get("/employees")
        assert response.status_code == 200
        # Last names run Liddell9..Liddell0, so ascending last name is Alice9 first
        assert _names_in(response.text) == ["Alice9", "Alice8", "Alice7"]

    async def test_alice_example_by_date(self, client, alice_employees):
        response = await client.get("/employees", params={"sortOrder": "Date", "pageNumber": "2"})
        assert _names_in(response.text) == ["Alice3", "Alice4", "Alice5"]
        assert 'class="previous"' in response.text
        assert 'class="next"' in response.text

    async def test_new_search_resets_page(self, client, alice_employees):
        response = await client.get(
            "/employees", params={"searchString": "Alice", "pageNumber": "3", "sortOrder": "Date"}
        )
        assert _names_in(response.text) == ["Alice0", "Alice1", "Alice2"]

    async def test_current_filter_is_reused(self, client, alice_employees):
        response = await client.get(
            "/employees", params={"currentFilter": "Alice1", "pageNumber": "1"}
        )
        assert _names_in(response.text) == ["Alice1"]
        assert 'name="searchString" value="Alice1"' in response.text

    async def test_bad_page_numbers_are_clamped(self, client, alice_employees):
        past_end = await client.get("/employees", params={"sortOrder": "Date", "pageNumber": "99"})
        assert _names_in(past_end.text) == ["Alice9"]

        garbage = await client.get("/employees", params={"sortOrder": "Date", "pageNumber": "abc"})
        assert garbage.status_code == 200
        assert _names_in(garbage.text) == ["Alice0", "Alice1", "Alice2"]

    async def test_unknown_sort_falls_back(self, client, alice_employees):
        response = await client.get("/employees", params={"sortOrder": "salary"})
        assert _names_in(response.text) == ["Alice9", "Alice8", "Alice7"]

    async def test_sort_header_links_toggle(self, client, alice_employees):
        response = await client.get("/employees", params={"sortOrder": "Date"})
        assert "sortOrder=date_desc" in response.text
        assert "sortOrder=name_desc" not in response.text

    async def test_empty_listing(self, client, lookups):
        response = await client.get("/employees")
        assert response.status_code == 200
        assert "No employees found." in response.text

    async def test_dept_count(self, client, alice_employees, lookups):
        department, _ = lookups
        response = await client.get("/employees/dept-count")
        assert response.status_code == 200
        assert f"<td>{department.id}</td><td>10</td>" in response.text


class TestJsonListing:

    async def test_page_and_echoed_parameters(self, client, alice_employees):
        response = await client.get(
            "/api/employees", params={"sortOrder": "Date", "pageNumber": "2", "currentFilter": "Alice"}
        )
        assert response.status_code == 200
        body = response.json()
        assert [e["first_name"] for e in body["employees"]] == ["Alice3", "Alice4", "Alice5"]
        assert body["page_index"] == 2
        assert body["total_pages"] == 4
        assert body["has_previous_page"] is True
        assert body["has_next_page"] is True
        assert body["sort_order"] == "Date"
        assert body["current_filter"] == "Alice"
        assert body["employees"][0]["department_name"] == "Engineering"

    async def test_empty_result(self, client, alice_employees):
        body = (await client.get("/api/employees", params={"searchString": "Bob"})).json()
        assert body["employees"] == []
        assert body["total_pages"] == 0
        assert body["has_previous_page"] is False
        assert body["has_next_page"] is False


# ── Details ────────────────────────────────────────────────────────


class TestDetails:

    async def test_details(self, client, db_session, lookups):
        employee = await _create(db_session, lookups)
        response = await client.get(f"/employees/{employee.id}")
        assert response.status_code == 200
        assert "Benali" in response.text
        assert "Engineering" in response.text

    async def test_missing_employee_is_404(self, client, lookups):
        response = await client.get("/employees/12345")
        assert response.status_code == 404

    @pytest.mark.parametrize("path", ["/employees/abc", "/employees/abc/edit", "/employees/1.5/delete"])
    async def test_non_numeric_id_is_404(self, client, lookups, path):
        assert (await client.get(path)).status_code == 404


# ── Create ─────────────────────────────────────────────────────────


class TestCreate:

    async def test_form_lists_departments_and_benefits(self, client, lookups):
        response = await client.get("/employees/create")
        assert response.status_code == 200
        assert "Engineering" in response.text
        assert "Health + Dental" in response.text

    async def test_create_redirects_to_list(self, client, db_session, lookups, csrf_token):
        response = await client.post("/employees/create", data=_form(csrf_token, lookups))

        assert response.status_code == 303
        assert response.headers["location"] == "/employees"
        page = await repo.list_employees_page(db_session, None, "Haddad", 1, 10)
        assert page.total_count == 1

    async def test_missing_token_is_rejected(self, client, db_session, lookups, csrf_token):
        data = _form(csrf_token, lookups)
        del data["csrf_token"]

        response = await client.post("/employees/create", data=data)

        assert response.status_code == 400
        assert (await repo.list_employees_page(db_session, None, None, 1, 10)).total_count == 0

    async def test_wrong_token_is_rejected(self, client, lookups, csrf_token):
        response = await client.post("/employees/create", data=_form("forged", lookups))
        assert response.status_code == 400

    async def test_invalid_form_is_redisplayed(self, client, db_session, lookups, csrf_token):
        response = await client.post(
            "/employees/create",
            data=_form(csrf_token, lookups, first_name="", hire_date="not-a-date"),
        )

        assert response.status_code == 200
        assert 'class="error"' in response.text
        assert 'value="Haddad"' in response.text
        assert (await repo.list_employees_page(db_session, None, None, 1, 10)).total_count == 0

    async def test_unknown_department_is_rejected(self, client, lookups, csrf_token):
        response = await client.post(
            "/employees/create", data=_form(csrf_token, lookups, department_id="999")
        )
        assert response.status_code == 200
        assert "Unknown department." in response.text


# ── Edit ───────────────────────────────────────────────────────────


class TestEdit:

    async def test_edit_form_carries_version(self, client, db_session, lookups):
        employee = await _create(db_session, lookups)
        response = await client.get(f"/employees/{employee.id}/edit")
        assert response.status_code == 200
        assert 'name="version" value="1"' in response.text
        assert 'value="Benali"' in response.text

    async def test_edit_form_missing_employee(self, client, lookups):
        assert (await client.get("/employees/999/edit")).status_code == 404

    async def test_edit_saves_and_redirects(self, client, db_session, lookups, csrf_token):
        employee = await _create(db_session, lookups)
        employee_id = employee.id

        response = await client.post(
            f"/employees/{employee_id}/edit",
            data=_form(csrf_token, lookups, id=str(employee_id), version="1", last_name="Zerhouni"),
        )

        assert response.status_code == 303
        reloaded = await repo.get_employee(db_session, employee_id)
        assert reloaded.last_name == "Zerhouni"
        assert reloaded.version == 2

    async def test_non_numeric_route_id_is_404(self, client, lookups, csrf_token):
        response = await client.post("/employees/abc/edit", data=_form(csrf_token, lookups, id="abc", version="1"))
        assert response.status_code == 404

    async def test_route_and_form_id_mismatch_is_404(self, client, db_session, lookups, csrf_token):
        employee = await _create(db_session, lookups)
        response = await client.post(
            f"/employees/{employee.id}/edit",
            data=_form(csrf_token, lookups, id=str(employee.id + 1), version="1"),
        )
        assert response.status_code == 404

    async def test_deleted_meanwhile_is_404(self, client, db_session, lookups, csrf_token):
        form = _form(csrf_token, lookups)
        employee = await _create(db_session, lookups)
        employee_id = employee.id
        await repo.delete_employee(db_session, employee_id)

        response = await client.post(
            f"/employees/{employee_id}/edit", data={**form, "id": str(employee_id), "version": "1"}
        )

        assert response.status_code == 404

    async def test_changed_meanwhile_is_a_fatal_conflict(self, client, db_session, lookups, csrf_token):
        form = _form(csrf_token, lookups)
        employee = await _create(db_session, lookups)
        employee_id = employee.id
        await repo.update_employee(db_session, employee_id, 1, first_name="Someone")

        with pytest.raises(ConcurrencyConflictError):
            await client.post(
                f"/employees/{employee_id}/edit", data={**form, "id": str(employee_id), "version": "1"}
            )

    async def test_missing_version_is_redisplayed(self, client, db_session, lookups, csrf_token):
        form = _form(csrf_token, lookups)
        employee = await _create(db_session, lookups)
        employee_id = employee.id

        response = await client.post(f"/employees/{employee_id}/edit", data={**form, "id": str(employee_id)})

        assert response.status_code == 200
        assert "Missing record version" in response.text


# ── Delete ─────────────────────────────────────────────────────────


class TestDelete:

    async def test_confirmation_page(self, client, db_session, lookups):
        employee = await _create(db_session, lookups)
        response = await client.get(f"/employees/{employee.id}/delete")
        assert response.status_code == 200
        assert "Are you sure" in response.text

    async def test_confirmation_missing_employee(self, client, lookups):
        assert (await client.get("/employees/999/delete")).status_code == 404

    async def test_delete_redirects(self, client, db_session, lookups, csrf_token):
        employee = await _create(db_session, lookups)
        employee_id = employee.id

        response = await client.post(f"/employees/{employee_id}/delete", data={"csrf_token": csrf_token})

        assert response.status_code == 303
        assert await repo.get_employee(db_session, employee_id) is None

    async def test_delete_missing_still_redirects(self, client, lookups, csrf_token):
        response = await client.post("/employees/999/delete", data={"csrf_token": csrf_token})
        assert response.status_code == 303

    async def test_delete_non_numeric_id_still_redirects(self, client, lookups, csrf_token):
        response = await client.post("/employees/abc/delete", data={"csrf_token": csrf_token})
        assert response.status_code == 303

    async def test_delete_requires_token(self, client, db_session, lookups, csrf_token):
        employee = await _create(db_session, lookups)
        response = await client.post(f"/employees/{employee.id}/delete", data={})
        assert response.status_code == 400


# ── Health ─────────────────────────────────────────────────────────


class TestHealth:

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "ok", "service": "employee-directory"}

    async def test_ready(self, client):
        response = await client.get("/ready")
        assert response.json()["checks"]["database"] == "ok"
