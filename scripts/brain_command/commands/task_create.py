"""task:create — analyze a task description, research context, estimate,
ask for approval, then create the task. Never executes it.

External inputs:
    ARGUMENTS         — the raw command-line text after /task:create
    HAS_AUTO_APPROVE  — true when the -y flag was given
"""

from __future__ import annotations

from brain_command.definition import CommandDefinition, command
from brain_command.operators import if_then_else, sequence
from brain_command.store import var
from brain_command.tools import agent_call, mcp_call

COMMAND_ID = "task:create"

_TASK_SPEC_TEMPLATE = (
    '{title: "concise, max 10 words", '
    'content: "objective, context, acceptance criteria, hints", '
    'priority: "critical|high|medium|low", '
    'estimate: "hours (1-8, >8 needs decompose)", '
    'tags: ["category", "domain"], '
    'comment: "Memory: #IDs. Files: paths. Related: #task_ids."}'
)


def define_rules(definition: CommandDefinition) -> None:
    (
        definition.rule("analyze-first").critical()
        .text(
            "MUST analyze input thoroughly before creating. Extract: objective, scope, "
            "requirements, type (feature/bugfix/refactor/research/docs)."
        )
        .why("A task built from a misread request sends the executor in the wrong direction.")
        .on_violation("Stop, re-read the input and extract the missing fields first.")
    )
    (
        definition.rule("research-before-create").critical()
        .text(
            "MUST research context: 1) existing tasks (duplicates?), 2) vector memory "
            "(prior work), 3) codebase (if code-related), 4) context7 (if unknown lib/pattern)."
        )
        .why("Duplicates and forgotten prior work waste more time than the research costs.")
        .on_violation("Run the missing research steps before formulating the task.")
    )
    (
        definition.rule("estimate-required").critical()
        .text("MUST provide time estimate. 1-8h normal. >8h = recommend /task:decompose after creation.")
        .why("Unestimated tasks cannot be prioritised or split.")
        .on_violation("Add an estimate in hours before showing the task spec.")
    )
    (
        definition.rule("create-only").critical()
        .text("This command ONLY creates tasks. NEVER execute after creation. User decides via /task:next or /do.")
        .why("The user decides when and how work starts.")
        .on_violation("STOP. Do not execute. Return control to the user.")
    )
    (
        definition.rule("mandatory-user-approval").critical()
        .text(
            "EVERY operation MUST have explicit user approval BEFORE execution. "
            "Present plan → WAIT for approval → Execute. NO auto-execution. "
            f"EXCEPTION: If {var('HAS_AUTO_APPROVE')} is true, auto-approve."
        )
        .why("User maintains control. No surprises. Flag -y enables automated execution.")
        .on_violation(f"STOP. Wait for explicit user approval (unless {var('HAS_AUTO_APPROVE')} is true).")
    )
    (
        definition.rule("comment-with-context").high()
        .text("Initial comment MUST contain: memory IDs, relevant file paths, related task IDs.")
        .why("Preserves the research for whoever executes the task.")
        .on_violation("Rewrite the comment with the IDs and paths found during research.")
    )
    (
        definition.rule("fast-path").high()
        .text(
            'Simple task (<140 chars, no "architecture/integration/multi-module"): '
            "skip heavy research, check duplicates + memory only."
        )
        .why("Full research on a one-line task costs more than the task itself.")
        .on_violation("Drop the delegated research and keep the duplicate and memory checks.")
    )
    (
        definition.rule("auto-approve").high()
        .text('-y flag = auto-approve. Skip "Proceed?" but show task spec before creation.')
        .why("Automation still needs a visible record of what was created.")
        .on_violation("Show the task spec, then create without asking.")
    )


def define_guidelines(definition: CommandDefinition) -> None:
    store = definition.store

    (
        definition.guideline("input")
        .text(store.declare("RAW_INPUT", "{ARGUMENTS}"))
        .text(store.declare("TASK_DESCRIPTION", "{extracted from RAW_INPUT}"))
    )

    workflow = (
        definition.guideline("workflow")
        .goal("Create task: parse → research → analyze → formulate → approve → create")
        .example()
    )
    (
        workflow.phase(
            "parse",
            sequence(
                f"Parse {var('TASK_DESCRIPTION')}",
                store.declare("TASK_SCOPE", "{objective, domain, type, requirements}"),
            ),
        )
        .phase(
            "classify",
            store.declare(
                "IS_SIMPLE",
                "description <140 chars AND no architecture/integration/multi-module keywords",
            ),
        )
        .phase(
            "research",
            if_then_else(
                var("IS_SIMPLE"),
                [
                    sequence(
                        mcp_call("vector-task", "task_list", '{query: "{objective}", limit: 5}'),
                        "check duplicates",
                    ),
                    mcp_call("vector-memory", "search_memories", '{query: "{domain}", limit: 3}'),
                ],
                [
                    sequence(
                        agent_call(
                            "explore",
                            "Search existing tasks for duplicates/related. Objective: {TASK_SCOPE}. "
                            "Return: duplicates, potential parent, dependencies.",
                        ),
                        store.declare("EXISTING_TASKS"),
                    ),
                    sequence(
                        mcp_call(
                            "vector-memory",
                            "search_memories",
                            '{query: "{domain} {objective}", limit: 5, category: "code-solution"}',
                        ),
                        store.declare("PRIOR_WORK"),
                    ),
                    if_then_else(
                        "code-related task",
                        sequence(
                            agent_call(
                                "explore",
                                "Scan codebase for {domain}. Find: files, patterns, dependencies. "
                                "Return: paths, architecture notes.",
                            ),
                            store.declare("CODEBASE_CONTEXT"),
                        ),
                    ),
                    if_then_else(
                        "unknown library/pattern",
                        sequence(
                            mcp_call("context7", "query-docs", '{query: "{library}"}'),
                            "understand before formulating",
                        ),
                    ),
                ],
            ),
        )
        .phase("duplicates", if_then_else("duplicate found", "STOP. Ask: update existing or create new?"))
        .phase(
            "analyze",
            mcp_call(
                "sequential-thinking",
                "sequentialthinking",
                {
                    "thought": "Analyzing: complexity, estimate, priority, dependencies, acceptance criteria",
                    "thoughtNumber": 1,
                    "totalThoughts": 2,
                    "nextThoughtNeeded": True,
                },
            ),
        )
        .phase("analysis", store.declare("ANALYSIS", "{complexity, estimate, priority, dependencies, criteria}"))
        .phase("formulate", store.declare("TASK_SPEC", _TASK_SPEC_TEMPLATE))
        .phase("show", "Show: Title, Priority, Estimate, Tags, Content preview")
        .phase("estimate-warning", if_then_else("estimate > 8", "WARN: >8h, recommend /task:decompose after creation"))
        .phase(
            "approve",
            if_then_else(store.get("HAS_AUTO_APPROVE"), "Auto-approved", 'Ask: "Create? (yes/no/modify)"'),
        )
        .phase(
            "create",
            sequence(
                mcp_call("vector-task", "task_create", "{title, content, priority, tags, estimate, comment}"),
                store.declare("CREATED_ID"),
            ),
        )
        .phase(
            "remember",
            mcp_call(
                "vector-memory",
                "store_memory",
                '{content: "Created task #{id}: {title}, {domain}, {estimate}h", category: "tool-usage"}',
            ),
        )
        .phase("decompose-hint", if_then_else("estimate > 8", f"Recommend: /task:decompose {var('CREATED_ID')}"))
        .phase("stop", "STOP. Do NOT execute. Return control to user.")
    )

    (
        definition.guideline("error-handling")
        .example()
        .phase(if_then_else("duplicate task found", "Ask: update existing #ID or create new?"))
        .phase(if_then_else("research fails", "Continue with available data, note gaps"))
        .phase(if_then_else("user rejects", "Accept modifications, rebuild spec, re-submit"))
    )


@command(
    COMMAND_ID,
    description=(
        "Task creation: analyzes description, researches context (memory, codebase, docs), "
        "estimates effort, creates well-structured task after approval. NEVER executes."
    ),
    externals=("ARGUMENTS", "HAS_AUTO_APPROVE"),
)
def task_create(definition: CommandDefinition) -> None:
    define_rules(definition)
    define_guidelines(definition)
