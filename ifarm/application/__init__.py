"""
Application layer - Application Business Rules.

This layer contains application-specific business rules, including:
- Interfaces (ports) for infrastructure dependencies
- The access decision engine and its supporting services
- Use cases that orchestrate domain logic
"""
