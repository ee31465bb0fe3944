import pytest
from pmscript_models import ExecutionContext, ResolveOptions, ScriptType, Variable

from pmscript import InMemoryPersistence, PersistenceStore, ScriptingHost, Settings
from pmscript.constants import ENVIRONMENTS_RECORD
from pmscript.exceptions import EnvironmentNotFoundError


class TestScenarios:
    def test_base_url(self, host):
        host.create_environment("dev", variables=[Variable(key="baseUrl", value="http://localhost:3000")])
        assert host.resolve_variables("{{baseUrl}}/users").resolved == "http://localhost:3000/users"

    def test_session_priority(self, host):
        host.create_environment("dev")
        host.set_environment_variable("user", "from-env")
        host.set_session_variable("user", "from-session")

        assert host.resolve_variables("{{user}}").resolved == "from-session"

    def test_timestamp(self, host):
        first = int(host.resolve_variables("{{timestamp}}").resolved)
        second = int(host.resolve_variables("{{timestamp}}").resolved)
        assert second >= first

    def test_self_reference(self, host):
        host.set_global_variable("selfKey", "{{selfKey}}")
        assert host.resolve_variables("{{selfKey}}").resolved == "{{selfKey}}"

    def test_header_extraction_into_global(self, host, make_response):
        response = make_response(status=200, headers={"x-id": "42"})

        host.extract_variables_from_response(response, [{"name": "id", "source": "header", "path": "x-id", "target": "global"}])

        assert host.get_global_variable("id") == "42"

    def test_switch_environment_clears_session(self, host):
        host.create_environment("A")
        second = host.create_environment("B")
        host.set_session_variable("token", "abc")

        host.switch_environment(second)

        assert host.get_session_variable("token") is None

    def test_switch_to_unknown_environment(self, host):
        with pytest.raises(EnvironmentNotFoundError):
            host.switch_environment("env_missing")

    def test_status_failure_message(self, host, make_response):
        result = host.execute_test_script('pm.test("status ok", () => pm.response.to.have.status(200));', make_response(status=404))

        assert len(result.tests) == 1
        assert result.tests[0].passed is False
        assert "200" in result.tests[0].error
        assert "404" in result.tests[0].error

    def test_pm_test_outcomes(self, host, make_response):
        result = host.execute_test_script('pm.test("ok", () => {}); pm.test("name", () => { throw new Error("x") });', make_response())

        assert [(t.passed, t.error) for t in result.tests] == [(True, None), (False, "x")]

    def test_timeout_keeps_host_responsive(self, make_response):
        host = ScriptingHost(Settings(script_timeout=0.2))

        result = host.execute_pre_request_script("for (;;) {}")

        assert result.success is False
        assert "timed out" in result.errors[0].message
        assert host.resolve_variables("still {{missing}}alive").resolved == "still alive"
        assert host.execute_pre_request_script("1 + 1").success is True


class TestVariables:
    def test_global_variables(self, host):
        host.set_global_variable("a", 1)

        assert host.get_global_variable("a") == "1"
        assert host.unset_global_variable("a") is True
        assert host.get_global_variable("a") is None

    def test_environment_variables(self, host):
        host.create_environment("dev")
        host.set_environment_variable("a", "1")

        assert host.get_environment_variable("a") == "1"
        assert host.unset_environment_variable("a") is True

    def test_environment_variables_by_id(self, host):
        host.create_environment("dev")
        staging = host.create_environment("staging")

        host.set_environment_variable("a", "1", environment_id=staging)

        assert host.get_environment_variable("a") is None
        assert host.get_environment_variable("a", environment_id=staging) == "1"
        assert host.unset_environment_variable("a", environment_id=staging) is True

        with pytest.raises(EnvironmentNotFoundError):
            host.set_environment_variable("a", "1", environment_id="env_missing")

    def test_clear_session_variables(self, host):
        host.set_session_variable("a", "1")
        host.clear_session_variables()
        assert host.get_session_variable("a") is None

    def test_stats_and_listing(self, host):
        host.create_environment("dev", variables=[Variable(key="a", value="1")])
        host.set_global_variable("b", "2")

        assert host.get_variable_stats().total_variables == 2
        assert [v.key for v in host.get_all_variables()["global"]] == ["b"]

    def test_script_sees_host_variables(self, host):
        host.set_global_variable("seed", "42")

        result = host.execute_pre_request_script('pm.globals.set("double", Number(pm.globals.get("seed")) * 2);')

        assert result.success is True
        assert host.get_global_variable("double") == "84"


class TestRequests:
    def test_resolve_object_variables(self, host):
        host.set_global_variable("id", "7")

        result = host.resolve_object_variables({"path": "/users/{{id}}", "ids": ["{{id}}", 8]})

        assert result == {"path": "/users/7", "ids": ["7", 8]}

    def test_prepare_request(self, host):
        host.create_environment("dev", variables=[Variable(key="baseUrl", value="http://localhost:3000")])
        host.set_session_variable("token", "secret")

        prepared = host.prepare_request(
            {
                "method": "POST",
                "url": "{{baseUrl}}/users",
                "headers": {"Authorization": "Bearer {{token}}"},
                "params": {"q": "{{missing}}"},
                "body": {"name": "{{name}}", "age": 30},
                "description": "{{baseUrl}} stays",
            }
        )

        assert prepared == {
            "method": "POST",
            "url": "http://localhost:3000/users",
            "headers": {"Authorization": "Bearer secret"},
            "params": {"q": ""},
            "body": {"name": "", "age": 30},
            "description": "{{baseUrl}} stays",
        }

    def test_prepare_request_keeping_unresolved(self, host):
        prepared = host.prepare_request({"url": "{{host}}/x"}, ResolveOptions(keep_unresolved=True))
        assert prepared["url"] == "{{host}}/x"


class TestHistoryApi:
    def test_history_and_report(self, host, make_response):
        host.execute_test_script('pm.test("a", () => {});', make_response())
        host.execute_test_script('pm.test("b", () => { throw new Error("no"); });', make_response())

        history = host.get_test_history()
        report = host.get_test_report()

        assert [run.tests[0].name for run in history] == ["b", "a"]
        assert [run.tests[0].name for run in host.get_test_history(limit=1)] == ["b"]
        assert report.total_runs == 2
        assert report.total_passed == 1
        assert report.total_failed == 1
        assert report.average_pass_rate == "50.00"

    def test_clear_test_history(self, host, make_response):
        host.execute_test_script('pm.test("a", () => {});', make_response())

        host.clear_test_history()

        assert host.get_test_history() == []
        assert host.get_test_report().total_runs == 0

    def test_pre_request_keeps_context_response(self, host, make_response):
        context = ExecutionContext(type=ScriptType.TEST, response=make_response(status=201))

        result = host.execute_pre_request_script("console.log(pm.response.code);", context)

        assert result.logs[0].message == "201"


class TestPersistence:
    def test_in_memory_persistence_satisfies_protocol(self):
        assert isinstance(InMemoryPersistence(), PersistenceStore)

    def test_save_and_load(self):
        persistence = InMemoryPersistence()
        host = ScriptingHost(persistence=persistence)
        environment_id = host.create_environment("dev", variables=[Variable(key="baseUrl", value="http://localhost:3000")])

        assert host.save_environments() is True
        assert persistence.read(ENVIRONMENTS_RECORD)["current"] == environment_id

        restored = ScriptingHost(persistence=persistence)
        assert restored.load_environments() is True
        assert restored.resolve_variables("{{baseUrl}}").resolved == "http://localhost:3000"

    def test_load_without_record(self):
        host = ScriptingHost(persistence=InMemoryPersistence())
        assert host.load_environments() is False

    def test_without_persistence(self, host):
        assert host.load_environments() is False
        assert host.save_environments() is False
