"""
cookbook-lint: Pattern definitions.

Keywords, vocabularies and regexes the rules match against. Tuning what a
rule recognizes means editing this file, not the rule.

Organization:
1. DEPENDENCY_KEYWORDS - Dependency declaration statements per file kind
2. RECIPE_REFERENCES - Recipe names that embed a cookbook name
3. ATTRIBUTE_ROOTS - Where node attribute chains start
4. NODE_API - Node methods that are not attribute reads
5. TEMPLATE_LOGIC - Control flow that does not belong in templates
6. VERSIONS - Semantic version and badge patterns
7. SUPPRESSIONS - Inline disable markers
8. FENCE_LANGUAGES - Code fence languages that can be validated
"""

from __future__ import annotations

import re

# =============================================================================
# 1. DEPENDENCY KEYWORDS
# =============================================================================

METADATA_DEPENDENCY_KEYWORDS = frozenset({"depends"})
DEPENDENCY_FILE_KEYWORDS = frozenset({"cookbook"})

DEPENDENCY_FILENAMES = frozenset({"Berksfile", "Policyfile.rb", "Cheffile"})
METADATA_FILENAME = "metadata.rb"

# =============================================================================
# 2. RECIPE REFERENCES
# =============================================================================
# include_recipe 'cookbook::recipe' -- the cookbook part precedes "::"
RECIPE_REFERENCE_CALLS = frozenset({"include_recipe", "require_recipe"})

# Run-list items: "recipe[apache2::mod_ssl]", "recipe[my-cookbook]"
RUN_LIST_RECIPE = re.compile(r"recipe\[([^\]:]+)(?:::[^\]]*)?\]")

# =============================================================================
# 3. ATTRIBUTE ROOTS
# =============================================================================

NODE_ROOT = "node"

PRECEDENCE_LEVELS = frozenset({
    "default",
    "normal",
    "override",
    "force_default",
    "force_override",
    "automatic",
    "set",
    "default_unless",
    "normal_unless",
    "override_unless",
})

# In attributes/*.rb the precedence levels are bare method calls
ATTRIBUTE_FILE_ROOTS = frozenset({
    "default",
    "normal",
    "override",
    "force_default",
    "force_override",
})

# node.run_state is a plain Hash, not an attribute chain
NON_ATTRIBUTE_SUBSCRIPTS = frozenset({"run_state"})

# =============================================================================
# 4. NODE API
# =============================================================================
# Methods on the node object. `node.<one of these>` is not method-style
# attribute access.

NODE_API = frozenset({
    "run_state", "run_list", "run_context", "recipes", "roles", "tags", "tag",
    "name", "chef_environment", "environment", "policy_name", "policy_group",
    "attribute?", "attributes", "key?", "has_key?", "include?", "member?",
    "platform?", "platform_family?", "platform_version",
    "fetch", "dig", "read", "read!", "exist?", "write", "write!", "unlink", "rm",
    "each", "each_key", "each_value", "each_attribute", "keys", "values",
    "to_hash", "to_h", "to_s", "to_json", "as_json", "inspect", "merged_attributes",
    "save", "destroy", "reset!", "consume_external_attrs", "apply_expansion_attributes",
    "expand!", "primary_runlist", "override_runlist", "automatic_attrs",
    "default_attrs", "normal_attrs", "override_attrs", "role?", "recipe?",
    "respond_to?", "is_a?", "kind_of?", "nil?", "class", "send", "public_send",
    "method_missing", "display_hash", "for_json", "chef_server_rest",
    "loaded_recipe", "loaded_recipes", "rm_default", "rm_normal", "rm_override",
    "set_cookbook_attribute", "debug_value", "select", "map", "find", "any?",
    "empty?", "length", "size", "count", "freeze", "frozen?", "dup", "clone",
    "object_id", "hash", "equal?", "eql?", "instance_variable_get",
}) | PRECEDENCE_LEVELS

# =============================================================================
# 5. TEMPLATE LOGIC
# =============================================================================

TEMPLATE_CONTROL_KEYWORDS = frozenset({
    "if", "unless", "elsif", "else", "case", "when",
    "while", "until", "for",
})

TEMPLATE_ITERATION_METHODS = frozenset({
    "each", "each_with_index", "each_pair", "each_with_object", "each_key",
    "each_value", "map", "collect", "select", "reject", "times", "upto",
    "downto", "step", "loop",
})

# =============================================================================
# 6. VERSIONS
# =============================================================================

SEMVER = re.compile(
    r"\bv?(\d+\.\d+\.\d+(?:-[0-9A-Za-z.-]+)?(?:\+[0-9A-Za-z.-]+)?)(?![0-9A-Za-z.])"
)

# https://img.shields.io/badge/<label>-<message>-<color>
# Dashes inside label/message are escaped as "--".
SHIELDS_BADGE = re.compile(
    r"img\.shields\.io/badge/(?P<label>(?:[^-/]|--)*)-(?P<message>(?:[^-/]|--)+)-(?P<color>[^/?.)\s]+)"
)

# Badge messages that are not release versions
BADGE_VERSION_LABELS = frozenset({"version", "release", "cookbook", "v", "latest"})

CHANGELOG_FILENAMES = ("CHANGELOG.md", "CHANGES.md", "HISTORY.md")
README_FILENAMES = ("README.md",)

# =============================================================================
# 7. SUPPRESSIONS
# =============================================================================

SUPPRESSION_TAG = "cookbook-lint:"
SUPPRESSION_DIRECTIVE = re.compile(
    r"cookbook-lint:\s*(?P<scope>disable-file|disable)\s*=\s*(?P<rules>[A-Za-z0-9_,\- ]+)"
)
SUPPRESS_ALL = "all"

# =============================================================================
# 8. FENCE LANGUAGES
# =============================================================================

FENCE_LANGUAGE_ALIASES = {
    "json": "json",
    "yaml": "yaml",
    "yml": "yaml",
    "python": "python",
    "py": "python",
    "ruby": "ruby",
    "rb": "ruby",
}
