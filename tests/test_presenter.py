"""Tests for the presenter DSL and rendering engine."""

import re
from datetime import date, datetime, timezone

import pytest

from apistem import POLYMORPHIC, ConfigurationError, Presenter
from apistem.utils.time import to_epoch

from example_presenters import PostPresenter, TaskPresenter, WorkspacePresenter
from fixtures_schema import Post, Task, Workspace


def test_presents_is_not_inherited(presenters):
    """Test that a subclass does not inherit the presented classes."""

    class ChildPresenter(WorkspacePresenter):
        pass

    assert WorkspacePresenter.presented_classes() == [Workspace]
    assert ChildPresenter.presented_classes() == []
    assert isinstance(presenters.for_(Workspace), WorkspacePresenter)
    assert not isinstance(presenters.for_(Workspace), ChildPresenter)


def test_presents_rejects_class_names():
    """Test that presents needs classes."""
    with pytest.raises(ConfigurationError):

        class BadPresenter(Presenter):
            @classmethod
            def define(cls):
                cls.presents("Workspace")


def test_subclasses_inherit_and_extend_fields(session):
    """Test that a subclass sees parent fields and may add its own."""

    class ExtendedPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.fields() as f:
                f.field("owner_name", "string", dynamic=lambda helper, workspace: workspace.user.username)

    workspace = session.get(Workspace, 1)
    result = ExtendedPresenter().group_present([workspace])[0]

    assert result["title"] == "Workspace 1"
    assert result["owner_name"] == "bob"
    assert "owner_name" not in WorkspacePresenter().group_present([workspace])[0]


def test_renders_fields_ids_and_column_backed_associations(session):
    """Test the default render of a workspace."""
    workspace = session.get(Workspace, 1)
    result = WorkspacePresenter().group_present([workspace])[0]

    assert result == {
        "id": "1",
        "title": "Workspace 1",
        "updated_at": to_epoch(workspace.updated_at),
        "user_id": "1",
    }


def test_optional_fields_render_only_when_requested(session):
    """Test optional field gating through group_present."""
    workspace = session.get(Workspace, 1)
    presenter = WorkspacePresenter()

    assert "description" not in presenter.group_present([workspace])[0]
    assert presenter.group_present([workspace], optional_fields=["description"])[0]["description"] == "Description 1"


def test_optional_hash_block_renders_only_when_requested(session):
    """Test that an optional grouping block is gated like any optional field."""

    class OverviewPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.fields() as f:
                with f.fields("overview", optional=True) as overview:
                    overview.field("title", "string")

    workspace = session.get(Workspace, 1)
    presenter = OverviewPresenter()

    assert "overview" not in presenter.group_present([workspace])[0]
    requested = presenter.group_present([workspace], optional_fields=["overview"])[0]
    assert requested["overview"] == {"title": "Workspace 1"}


def test_conditional_hash_block_is_gated(session):
    """Test that a grouping block with if_ is dropped when its conditional fails."""

    class GatedPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.conditionals() as c:
                c.request("is_admin", lambda helper: getattr(helper, "admin", False))
            with cls.fields() as f:
                with f.fields("admin_details", if_="is_admin") as details:
                    details.field("title", "string")

    workspace = session.get(Workspace, 1)
    presenter = GatedPresenter()

    assert "admin_details" not in presenter.group_present([workspace])[0]
    admin = presenter.group_present([workspace], helper_attributes={"admin": True})[0]
    assert admin["admin_details"] == {"title": "Workspace 1"}


def test_requested_has_many_associations_render_ids(session):
    """Test that requested has-many associations render <singular>_ids and are collected."""
    workspace = session.get(Workspace, 1)
    collected = {}
    result = WorkspacePresenter().group_present([workspace], ["tasks"], load_associations_into=collected)[0]

    assert result["task_ids"] == ["1", "2", "4"]
    assert [task.id for task in collected["tasks"]] == [1, 2, 4]


def test_unrequested_non_column_associations_are_dropped(session):
    """Test that has-many associations are absent unless requested."""
    workspace = session.get(Workspace, 1)
    result = WorkspacePresenter().group_present([workspace])[0]

    assert "task_ids" not in result
    assert "tasks" not in result


def test_null_foreign_keys_render_as_none(session):
    """Test that a missing belongs-to renders None, not an empty string."""
    task = session.get(Task, 1)
    result = TaskPresenter().group_present([task], ["parent"])[0]

    assert result["parent_id"] is None
    assert result["workspace_id"] == "1"


def test_requested_singular_computed_association_renders_id(session):
    """Test that a non-column singular association renders <name>_id when requested."""

    class LeadTaskPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.associations() as a:
                a.association("lead_task", Task, dynamic=lambda helper, workspace: workspace.tasks[0] if workspace.tasks else None)

    workspaces = [session.get(Workspace, 1), session.get(Workspace, 4)]
    results = LeadTaskPresenter().group_present(workspaces, ["lead_task"])

    assert results[0]["lead_task_id"] == "1"
    assert results[1]["lead_task_id"] is None


def test_polymorphic_associations_render_id_and_type(session):
    """Test that polymorphic column-backed associations emit <name>_id and <name>_type."""
    posts = [session.get(Post, 1), session.get(Post, 2), session.get(Post, 3)]
    collected = {}
    results = PostPresenter().group_present(posts, ["subject"], load_associations_into=collected)

    assert (results[0]["subject_id"], results[0]["subject_type"]) == ("1", "Workspace")
    assert (results[1]["subject_id"], results[1]["subject_type"]) == ("1", "Task")
    assert (results[2]["subject_id"], results[2]["subject_type"]) == (None, None)
    assert [type(record) for record in collected["subject"]] == [Workspace, Task]


def test_conditionals_gate_fields_per_model(session):
    """Test model and request conditionals controlling field visibility."""

    class ConditionalPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.conditionals() as c:
                c.model("owned_by_bob", lambda helper, workspace: workspace.user_id == 1)
                c.request("is_admin", lambda helper: getattr(helper, "admin", False))

            with cls.fields() as f:
                f.field("bob_only", "string", dynamic=lambda helper, workspace: "yes", if_="owned_by_bob")
                f.field("admin_only", "string", dynamic=lambda helper, workspace: "yes", if_=["owned_by_bob", "is_admin"])

    workspaces = [session.get(Workspace, 1), session.get(Workspace, 4)]
    presenter = ConditionalPresenter()

    plain = presenter.group_present(workspaces)
    assert "bob_only" in plain[0] and "bob_only" not in plain[1]
    assert "admin_only" not in plain[0]

    admin = presenter.group_present(workspaces, helper_attributes={"admin": True})
    assert admin[0]["admin_only"] == "yes"
    assert "admin_only" not in admin[1]


def test_helpers_are_fresh_per_model_and_shared_across_fields(session):
    """Test helper mixins: one instance per model, shared by that model's fields."""

    class Counter:
        def bump(self):
            self.count = getattr(self, "count", 0) + 1
            return self.count

    class HelperPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            cls.helper(Counter)
            with cls.fields() as f:
                f.field("first", "integer", dynamic=lambda helper, workspace: helper.bump())
                f.field("second", "integer", dynamic=lambda helper, workspace: helper.bump())

    results = HelperPresenter().group_present([session.get(Workspace, 1), session.get(Workspace, 2)])

    assert [(r["first"], r["second"]) for r in results] == [(1, 2), (1, 2)]


def test_lookup_runs_once_for_the_whole_collection(session):
    """Test lookup batching through group_present."""
    calls = []

    def task_counts(helper, workspaces):
        calls.append([w.id for w in workspaces])
        return {w.id: len(w.tasks) for w in workspaces}

    class LookupPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.fields() as f:
                f.field("task_count", "integer", lookup=task_counts)

    workspaces = session.query(Workspace).order_by(Workspace.id).all()
    results = LookupPresenter().group_present(workspaces)

    assert [r["task_count"] for r in results] == [3, 1, 1, 0, 0, 0]
    assert calls == [[1, 2, 3, 4, 5, 6]]


def test_lookup_associations_render_ids(session):
    """Test that associations may be computed with a lookup."""

    class LookupAssociationPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.associations() as a:
                a.association(
                    "open_tasks",
                    Task,
                    lookup=lambda helper, workspaces: {w.id: [t for t in w.tasks if t.parent_id is None] for w in workspaces},
                )

    result = LookupAssociationPresenter().group_present([session.get(Workspace, 1)], ["open_tasks"])[0]

    assert result["open_task_ids"] == ["1", "2"]


def test_custom_present_output_is_post_processed(session):
    """Test that an overridden present may mix literals, fields and dates."""

    class CustomPresenter(Presenter):
        def present(self, model):
            return {
                "kind": "workspace",
                "title": WorkspacePresenter.configuration["fields"]["title"],
                "dates": {"created_on": date(2024, 3, 1), "history": [datetime(2024, 3, 1, tzinfo=timezone.utc)]},
            }

    result = CustomPresenter().group_present([session.get(Workspace, 1)])[0]

    assert result["kind"] == "workspace"
    assert result["title"] == "Workspace 1"
    assert re.match(r"^\d{4}-\d{2}-\d{2}$", result["dates"]["created_on"])
    assert result["dates"]["history"] == [1709251200]
    assert result["id"] == "1"


def test_present_without_declarations_is_a_configuration_error(session):
    """Test that the bare base presenter cannot render."""
    with pytest.raises(ConfigurationError):
        Presenter().present(session.get(Workspace, 1))


def test_custom_preload_hook_receives_models_and_associations(session):
    """Test that custom_preload runs before rendering."""
    seen = []

    class PreloadingPresenter(WorkspacePresenter):
        def custom_preload(self, models, association_names):
            seen.append(([m.id for m in models], association_names))

    PreloadingPresenter().group_present([session.get(Workspace, 1)], ["tasks", "unknown"])

    assert seen == [([1], ["tasks"])]


def test_allowed_associations_respects_restrict_to_only():
    """Test that restrict_to_only associations need an only query."""

    class RestrictedPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            with cls.associations() as a:
                a.association("secret_tasks", Task, via="tasks", restrict_to_only=True)

    presenter = RestrictedPresenter()

    assert set(presenter.allowed_associations(False)) == {"user", "tasks"}
    assert set(presenter.allowed_associations(True)) == {"user", "tasks", "secret_tasks"}


def test_extract_filters():
    """Test filter extraction: known names only, booleans, defaults and blanks."""

    class DefaultFilterPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            cls.filter("archived", lambda scope, archived: scope, default=False)

    presenter = DefaultFilterPresenter()

    assert presenter.extract_filters({"filters": "owned_by:2,unknown:1"}) == {"owned_by": "2", "archived": False}
    assert presenter.extract_filters({"filters": "archived:TRUE"}) == {"archived": True}
    assert presenter.extract_filters({"owned_by": "3"}, apply_default_filters=False) == {"owned_by": "3"}
    assert presenter.extract_filters({"filters": "owned_by:1", "owned_by": "3"}, apply_default_filters=False) == {"owned_by": "1"}
    assert presenter.extract_filters({"owned_by": ""}, apply_default_filters=False) == {}


def test_apply_filters_to_scope(session):
    """Test callable filters, model classmethod filters and column filters."""

    class ColumnFilterPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            cls.filter("participant_id")
            cls.filter("scoped", lambda scope, value, params: scope.filter(Workspace.id <= int(params["max_id"])), include_params=True)

    presenter = ColumnFilterPresenter()
    scope = session.query(Workspace)

    def ids(params):
        return sorted(w.id for w in presenter.apply_filters_to_scope(scope, params).all())

    assert ids({"filters": "owned_by:1"}) == [1, 2, 3]
    assert ids({"filters": "titled:Workspace 4"}) == [4]
    assert ids({"filters": "participant_id:42"}) == [2, 5]
    assert ids({"filters": "scoped:true", "max_id": "2"}) == [1, 2]


def test_calculate_sort_name_and_direction():
    """Test defaults, unknown sorts and direction sanitizing."""
    presenter = WorkspacePresenter()

    assert presenter.calculate_sort_name_and_direction({}) == ("updated_at", "desc")
    assert presenter.calculate_sort_name_and_direction({"order": "hello:desc"}) == ("updated_at", "desc")
    assert presenter.calculate_sort_name_and_direction({"order": "title:desc"}) == ("title", "desc")
    assert presenter.calculate_sort_name_and_direction({"order": "title:drop table"}) == ("title", "asc")
    assert presenter.calculate_sort_name_and_direction({"order": "title:;;;droptable::;;"}) == ("title", "asc")

    class NoDefaultPresenter(Presenter):
        pass

    assert NoDefaultPresenter().calculate_sort_name_and_direction({}) == ("updated_at", "desc")


def test_apply_ordering_to_scope(session):
    """Test column, SQL string and callable sort orders with the primary key tiebreaker."""

    class OrderingPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            cls.sort_order("owner", lambda scope, direction: scope.order_by(Workspace.user_id.desc() if direction == "desc" else Workspace.user_id.asc()))

    presenter = OrderingPresenter()
    scope = session.query(Workspace)

    def ids(params):
        return [w.id for w in presenter.apply_ordering_to_scope(scope, params).all()]

    assert ids({}) == [3, 1, 5, 6, 4, 2]
    assert ids({"order": "updated_at:asc"}) == [2, 4, 6, 5, 1, 3]
    assert ids({"order": "title:asc"}) == [1, 2, 3, 4, 5, 6]
    assert ids({"order": "owner:asc"}) == [3, 2, 1, 6, 5, 4]
    assert ids({"order": "id:asc"}) == [1, 2, 3, 4, 5, 6]


def test_query_strategy_declaration():
    """Test the query strategy DSL."""

    class SearchingPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            cls.query_strategy("filter_and_search")

    assert WorkspacePresenter().get_query_strategy() == "filter_or_search"
    assert SearchingPresenter().get_query_strategy() == "filter_and_search"

    with pytest.raises(ConfigurationError):
        SearchingPresenter.query_strategy("bogus")


def test_preload_declarations_are_inherited():
    """Test that preload declarations accumulate along the class chain."""

    class PreloadPresenter(WorkspacePresenter):
        @classmethod
        def define(cls):
            cls.preload("user", {"tasks": ["sub_tasks"]})

    class MorePreloadPresenter(PreloadPresenter):
        @classmethod
        def define(cls):
            cls.preload("tasks")

    assert list(MorePreloadPresenter.configuration["preloads"]) == ["user", {"tasks": ["sub_tasks"]}, "tasks"]
    assert list(WorkspacePresenter.configuration["preloads"]) == []


def test_polymorphic_declaration_with_user_presenter(session):
    """Test that polymorphic associations keep the raw type column value."""

    class SubjectOnlyPresenter(Presenter):
        @classmethod
        def define(cls):
            with cls.associations() as a:
                a.association("topic", POLYMORPHIC, via="subject")

    result = SubjectOnlyPresenter().group_present([session.get(Post, 2)])[0]

    assert result == {"topic_id": "1", "topic_type": "Task", "id": "2"}
