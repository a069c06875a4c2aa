"""
Rules package.

Rules are discovered by the registry: every module in this package that
defines a ``RULES`` list gets its rules registered.

To add a new rule:
1. Create a Python file in this directory (e.g., my_rule.py)
2. Define a class implementing the Rule protocol (meta, requires, node_kinds, check)
3. Create a RULES list containing your rule instance
4. The rule will be auto-discovered when --discover rules is used
"""
