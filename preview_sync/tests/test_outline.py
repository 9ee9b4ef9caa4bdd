from preview_sync.blocks import Block, BlockKind
from preview_sync.outline import breadcrumbs, build_outline
from preview_sync.position_mapper import build_table


def test_outline_lists_headings_in_order() -> None:
    table = build_table(
        [
            Block("h1", 0, 0, 0.0, 40.0, BlockKind.HEADING, level=1, text="Guide"),
            Block("p1", 1, 4, 40.0, 120.0),
            Block("h2", 5, 5, 120.0, 150.0, BlockKind.HEADING, level=2, text="  Install  "),
            Block("h3", 6, 9, 150.0, 150.0, BlockKind.HEADING, level=3, collapsed=True),
        ]
    )

    outline = build_outline(table)

    assert [(entry.block_id, entry.level, entry.text) for entry in outline] == [
        ("h1", 1, "Guide"),
        ("h2", 2, "Install"),
        ("h3", 3, "h3"),
    ]
    assert outline[1].offset == 120.0
    assert outline[2].source_line == 6
    assert outline[2].indent == 2


def test_breadcrumbs_keep_last_components() -> None:
    assert breadcrumbs("/home/me/notes/projects/plan.md") == ["notes", "projects", "plan.md"]
    assert breadcrumbs("plan.md") == ["plan.md"]
    assert breadcrumbs(None) == ["Preview"]
